"""
Shared fixtures: an app on an in-memory database and a small festival.
"""
from types import SimpleNamespace

import pytest

from app import create_app
from config import TestConfig
from extensions import db
from models import (
    User, Team, ProgramCategory, MemberCategory, Participant, Program, ProgramJudge,
    Assignment, Score, PointsSettings,
)

PASSWORD = 'secret'


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(login, role, name=None):
    user = User(login=login, name=name or login.title(), role=role)
    user.set_password(PASSWORD)
    db.session.add(user)
    db.session.commit()
    return user


def login(client, user):
    response = client.post('/login', json={'login': user.login, 'password': PASSWORD})
    assert response.status_code == 200
    return response


def add_assignment(program, participant, code_letter=None, status=None):
    assignment = Assignment(
        program_id=program.id,
        participant_id=participant.id,
        team_id=participant.team_id,
        code_letter=code_letter,
        status=status,
    )
    db.session.add(assignment)
    db.session.commit()
    return assignment


def add_score(assignment, judge, value):
    score = Score(
        program_id=assignment.program_id,
        assignment_id=assignment.id,
        judge_id=judge.id,
        score=value,
    )
    db.session.add(score)
    db.session.commit()
    return score


@pytest.fixture
def fest(app):
    """
    Two teams with two participants each, one individual program judged by
    one judge, and the points table used by the worked scoring example.
    """
    admin = make_user('admin', 'admin')
    judge = make_user('judge', 'judge')
    other_judge = make_user('judge2', 'judge')
    stage = make_user('stage', 'stagecontroller')
    red_leader = make_user('red', 'team')
    blue_leader = make_user('blue', 'team')

    general = ProgramCategory(name='General', is_general=True)
    junior = MemberCategory(name='Junior')
    db.session.add_all([general, junior])
    db.session.commit()

    red = Team(name='Red', leader_id=red_leader.id, starting_chest_number=100)
    blue = Team(name='Blue', leader_id=blue_leader.id, starting_chest_number=200)
    db.session.add_all([red, blue])
    db.session.commit()

    people = {}
    for team, names in ((red, ('Xavier', 'Yusuf')), (blue, ('Zara', 'Wren'))):
        for offset, name in enumerate(names):
            participant = Participant(
                name=name,
                chest_number=team.starting_chest_number + offset,
                team_id=team.id,
                member_category_id=junior.id,
            )
            db.session.add(participant)
            people[name] = participant

    program = Program(name='Elocution', category_id=general.id, type='individual', participants_count=2)
    db.session.add(program)
    db.session.commit()
    db.session.add(ProgramJudge(judge_id=judge.id, program_id=program.id))
    db.session.add(PointsSettings(
        normal_grade_points={'A+': 10, 'A': 8, 'B': 6, 'C': 4},
        special_grade_points={},
        rank_points={'first': 5, 'second': 3, 'third': 1},
    ))
    db.session.commit()

    return SimpleNamespace(
        admin=admin, judge=judge, other_judge=other_judge, stage=stage,
        red_leader=red_leader, blue_leader=blue_leader,
        red=red, blue=blue, general=general, junior=junior,
        program=program, people=people,
    )

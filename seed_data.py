# seed_data.py
# Demo festival for local development: `flask --app app seed`

import click

from extensions import db
from models import (
    User, Team, ProgramCategory, MemberCategory, Participant, Program, ProgramJudge,
    Assignment, Score, PointsSettings, FestSettings, PublishedResult, TeamStandings,
)

DEMO_PASSWORD = 'password'


def _user(login, name, role):
    user = User(login=login, name=name, role=role)
    user.set_password(DEMO_PASSWORD)
    return user


def seed_demo_fest():
    """Wipes every table and loads users, teams, participants and programs."""
    # --- 1. Clear old data ---
    click.echo('Clearing old data...')
    # Children first
    for model in (TeamStandings, PublishedResult, Score, Assignment, ProgramJudge, Program,
                  Participant, Team, ProgramCategory, MemberCategory, PointsSettings,
                  FestSettings, User):
        db.session.query(model).delete()
    db.session.commit()

    # --- 2. Create data ---
    click.echo('Adding demo data...')
    try:
        admin = _user('admin', 'Festival Admin', 'admin')
        judge1 = _user('judge1', 'Judge One', 'judge')
        judge2 = _user('judge2', 'Judge Two', 'judge')
        stage = _user('stage', 'Stage Controller', 'stagecontroller')
        leader_red = _user('red', 'Red House Leader', 'team')
        leader_blue = _user('blue', 'Blue House Leader', 'team')
        db.session.add_all([admin, judge1, judge2, stage, leader_red, leader_blue])
        db.session.commit()

        general = ProgramCategory(name='General', is_general=True)
        junior = ProgramCategory(name='Junior')
        senior = ProgramCategory(name='Senior')
        db.session.add_all([general, junior, senior])

        junior_members = MemberCategory(name='Junior')
        senior_members = MemberCategory(name='Senior')
        db.session.add_all([junior_members, senior_members])

        red = Team(name='Red House', leader_id=leader_red.id, starting_chest_number=100)
        blue = Team(name='Blue House', leader_id=leader_blue.id, starting_chest_number=200)
        db.session.add_all([red, blue])
        db.session.commit()

        participants = []
        for team in (red, blue):
            for offset, (name, category) in enumerate([
                ('Asha', junior_members), ('Bilal', junior_members),
                ('Chitra', senior_members), ('Dev', senior_members),
            ]):
                participants.append(Participant(
                    name=f'{name} ({team.name.split()[0]})',
                    chest_number=team.starting_chest_number + offset,
                    team_id=team.id,
                    member_category_id=category.id,
                ))
        db.session.add_all(participants)

        programs = [
            Program(name='Elocution', category_id=general.id, type='individual', mode='on-stage',
                    participants_count=2),
            Program(name='Light Music', category_id=junior.id, type='individual', mode='on-stage',
                    participants_count=1),
            Program(name='Essay Writing', category_id=senior.id, type='individual', mode='off-stage',
                    participants_count=1),
            Program(name='Group Song', category_id=general.id, type='group', mode='on-stage',
                    mark_type='special-mark', participants_count=1, group_members=4),
        ]
        db.session.add_all(programs)
        db.session.commit()

        for program in programs:
            db.session.add(ProgramJudge(judge_id=judge1.id, program_id=program.id))
            if program.mode == 'on-stage':
                db.session.add(ProgramJudge(judge_id=judge2.id, program_id=program.id))

        group_song = programs[-1]
        db.session.add(PointsSettings(
            normal_grade_points={'A+': 7, 'A': 5, 'B': 3, 'C': 1},
            special_grade_points={str(group_song.id): {'A+': 10, 'A': 8, 'B': 5, 'C': 2}},
            rank_points={'first': 5, 'second': 3, 'third': 1},
        ))
        db.session.add(FestSettings(fest_name='Fest Central Demo', allow_team_assignment=True))
        db.session.commit()

        click.echo(f'Demo data added. Every account uses the password "{DEMO_PASSWORD}".')
    except Exception:
        db.session.rollback()
        click.echo('Failed to add demo data, rolled back.', err=True)
        raise

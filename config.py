# config.py
# Flask application configuration

import os


class Config:
    # Relative sqlite paths land in the Flask instance folder
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///fest_central.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.environ.get('SECRET_KEY', 'change-me-in-production')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Used until an admin saves the fest settings row
    FEST_NAME = os.environ.get('FEST_NAME', 'Fest Central')


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SECRET_KEY = 'test'
    LOG_LEVEL = 'WARNING'

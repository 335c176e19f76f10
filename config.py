# config.py
# Flask application configuration

import os

class Config:
    # Absolute path to the local SQLite database (used when DATABASE_URL is not set)
    BASE_DIR = os.path.abspath(os.path.dirname(__file__))
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        f'sqlite:///{os.path.join(BASE_DIR, "instance", "contests.db")}'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.getenv('SECRET_KEY', 'your-secret-key-change-me')  # Replace with a random key in production

    # --- Contest scoring ---
    WINNER_COUNT = 3        # ranks 1..WINNER_COUNT get is_winner
    SCORE_PRECISION = 2     # decimals kept in final_score
    MANUAL_SCORE_MAX = 10   # judge sliders go 0..10


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SECRET_KEY = 'test'

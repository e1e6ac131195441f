import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///quizgame.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Game timers (seconds). Question open time comes from each question's duration.
    COUNTDOWN_DURATION_SEC = int(os.environ.get('COUNTDOWN_DURATION_SEC', '3'))
    # 'reciprocal' awards points/rank to correct players, 'flat' awards full points
    POINTS_SCALING_RULE = os.environ.get('POINTS_SCALING_RULE', 'reciprocal')
    MAX_AUTO_START_NUM = int(os.environ.get('MAX_AUTO_START_NUM', '50'))
    MAX_ACTIVE_SESSIONS = int(os.environ.get('MAX_ACTIVE_SESSIONS', '10'))
    # When false, timers are registered but never run (tests fire them by hand)
    TIMERS_ENABLED = os.environ.get('TIMERS_ENABLED', '1') not in ('0', 'false', 'False')
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))

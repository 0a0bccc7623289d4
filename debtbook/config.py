import os
from pathlib import Path
from dotenv import load_dotenv
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent  # <project>
INSTANCE_DIR = BASE_DIR / "instance"

def _default_sqlite_uri():
    INSTANCE_DIR.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{(INSTANCE_DIR / 'debtbook.db').as_posix()}"

def _engine_options():
    opts = {"pool_pre_ping": True}
    timeout = os.getenv("DB_POOL_TIMEOUT")
    if timeout:
        opts["pool_timeout"] = int(timeout)
    return opts

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL") or _default_sqlite_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options()
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LOG_LEVEL = "DEBUG"

def ensure_instance(app):
    # Flask instance path
    os.makedirs(app.instance_path, exist_ok=True)

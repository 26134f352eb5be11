import os

# Keep test runs from writing log files or picking up a developer's environment
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("APP_ENVIRONMENT", "test")

from tests.fixtures import *  # noqa: E402,F401,F403

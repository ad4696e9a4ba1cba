#!/usr/bin/env python3
"""
Pre-push / production readiness checks.
Run from backend dir with project venv active: python scripts/pre_push_checks.py
"""
import sys
from pathlib import Path

BACKEND = Path(__file__).resolve().parent.parent
if str(BACKEND) not in sys.path:
    sys.path.insert(0, str(BACKEND))


def check_imports():
    from app.main import app
    from app.client.session import TestSession  # noqa: F401
    paths = {route.path for route in app.routes}
    assert "/enrollment/{course_id}/test/submit" in paths
    assert "/enrollment/certificate-status" in paths
    return "imports"


def check_settings():
    from app.config import settings
    assert 0 <= settings.pass_threshold_percent <= 100
    assert settings.attempt_append_retries >= 1
    if settings.is_production:
        assert settings.secret_key != "change-me-in-production", "SECRET_KEY not set"
    return "settings"


def check_scoring():
    from app.services.scoring import percent_half_up, score_answers
    assert percent_half_up(2, 3) == 67
    assert percent_half_up(1, 8) == 13
    result = score_answers([0, 0], [0, 1], threshold=40)
    assert result.score == 50 and result.passed
    return "scoring"


def check_init_db():
    from app.database import init_sqlite_db
    init_sqlite_db()
    return "init_sqlite_db"


CHECKS = [check_imports, check_settings, check_scoring, check_init_db]


def main():
    for fn in CHECKS:
        try:
            name = fn()
            print(f"OK {name}")
        except Exception as e:
            print(f"FAIL {fn.__name__}: {e}")
            return 1
    print("All pre-push checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

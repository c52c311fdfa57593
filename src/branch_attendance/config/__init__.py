import os


def get_settings_module() -> str:
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "branch_attendance.config.production"

    if env in {"test", "testing"}:
        return "branch_attendance.config.testing"

    return "branch_attendance.config.development"

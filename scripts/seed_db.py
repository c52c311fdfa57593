from __future__ import annotations

import importlib
import logging

from dotenv import load_dotenv

from branch_attendance.config import get_settings_module
from branch_attendance.database.bootstrap import apply_seed_sql
from branch_attendance.main import DATABASE_DIR, configure_logging

logger = logging.getLogger("scripts.seed_db")


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    db_config = dict(settings.DB_CONFIG)

    seed_path = DATABASE_DIR / "seed.sql"
    apply_seed_sql(db_config, seed_path=seed_path)
    logger.info(
        "Seeded database -> %s@%s:%s/%s",
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )


if __name__ == "__main__":
    main()

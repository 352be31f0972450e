#!/usr/bin/env python3
"""Database initialization script: creates tables and stores the weather alert workflow."""

import sys

from weatherflow.config import load_config
from weatherflow.core.logging import setup_logging
from weatherflow.samples import weather_alert_workflow
from weatherflow.storage.database import create_tables, get_database_engine
from weatherflow.storage.repository import WorkflowRepository


def main():
    """Initialize the database."""
    config = load_config()

    logger = setup_logging(level=config.log_level.value)

    try:
        logger.info("Initializing database...")

        get_database_engine(config)

        create_tables()
        logger.info("Database tables created successfully")

        workflow_id = WorkflowRepository().save_definition(weather_alert_workflow())
        logger.info(f"Seeded workflow {workflow_id}")

        logger.info("Database initialization completed")

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

from sqlalchemy import inspect, text
from signaling.db.session import engine, Base
from signaling.utils.logger import configure_logging, get_logger

# Import all models before create_all
from signaling.models import call  # noqa: F401

logger = get_logger("signaling.init_db")

def create_missing_tables():
    logger.info("Creating missing tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Tables created successfully (if missing).")

def add_missing_columns():
    inspector = inspect(engine)
    with engine.connect() as conn:
        for table_name, model_table in Base.metadata.tables.items():
            if table_name in inspector.get_table_names():
                existing_cols = [col["name"] for col in inspector.get_columns(table_name)]
                for col_name, col in model_table.columns.items():
                    if col_name not in existing_cols:
                        sql = f'ALTER TABLE "{table_name}" ADD COLUMN "{col_name}" {col.type.compile(engine.dialect)};'
                        logger.info("Adding column %s.%s", table_name, col_name)
                        conn.execute(text(sql))
                        conn.commit()
            else:
                logger.warning("Table %s not found in DB, creating it...", table_name)
                model_table.create(bind=engine, checkfirst=True)

if __name__ == "__main__":
    configure_logging()
    logger.info("Syncing database...")
    create_missing_tables()
    add_missing_columns()
    logger.info("Database sync complete.")

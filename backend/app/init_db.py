import logging

from app.database import engine, init_db

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logger.info("Creating database tables on %s", engine.url.render_as_string(hide_password=True))
    init_db()
    logger.info("Tables created successfully")

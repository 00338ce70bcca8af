# create_tables.py
import logging

from db import engine
from models import Base

logger = logging.getLogger(__name__)


def main():
    Base.metadata.create_all(bind=engine)
    logger.info("Created tables: %s", ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()

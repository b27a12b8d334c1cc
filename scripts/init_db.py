from famipoints.core.logging import setup_logging
from famipoints.db.session import engine, init_schema


def init():
    setup_logging()
    init_schema(engine)


if __name__ == "__main__":
    init()
    print("Database schema created.")

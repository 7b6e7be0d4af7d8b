from config import Settings


def test_url_from_parts():
    settings = Settings(
        DATABASE_URL=None,
        DB_HOST="mysql",
        DB_PORT=5432,
        DB_USER="root",
        DB_PASSWORD="secret",
        DB_NAME="lampdb",
    )
    url = settings.sqlalchemy_url()

    assert url.drivername == "postgresql+psycopg2"
    assert url.host == "mysql"
    assert url.port == 5432
    assert url.username == "root"
    assert url.password == "secret"
    assert settings.database_name() == "lampdb"


def test_database_url_wins():
    settings = Settings(
        DATABASE_URL="postgresql+psycopg2://app:pw@db:5432/visits",
        DB_NAME="lampdb",
    )

    assert settings.sqlalchemy_url().host == "db"
    assert settings.database_name() == "visits"

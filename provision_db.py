# provision_db.py

from roster.core.config import get_settings
from roster.database import apply_row_level_security, create_db_and_tables, get_engine


def main():
    settings = get_settings()
    engine = get_engine(settings)

    print("Creating tables...")
    create_db_and_tables(engine)

    print("Installing triggers and row-level security policies...")
    apply_row_level_security(engine, settings)

    print(f"Done. Sign-up role policy: {settings.SIGNUP_ROLE_POLICY}")

if __name__ == "__main__":
    main()

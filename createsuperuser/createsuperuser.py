from grocery.config import Settings
from grocery.database import build_engine, build_session_factory, init_db
from grocery.models import RoleEnum
from grocery.queries import upsert_user
from grocery.schemas import UserUpsert
from grocery.security import session_token_for


def create_superuser(db, settings: Settings, open_id: str, name=None, email=None):
    """Upsert an admin user and mint a session token for it."""
    fields = {"open_id": open_id, "login_method": "cli", "role": RoleEnum.ADMIN}
    # Blank answers leave an existing user's details alone
    if name:
        fields["name"] = name
    if email:
        fields["email"] = email

    data = UserUpsert(**fields)
    user = upsert_user(db, data.model_dump(exclude_unset=True), settings.owner_open_id)
    return user, session_token_for(settings, user)


def main():
    settings = Settings.from_env()
    engine = build_engine(settings.database_url)
    init_db(engine)
    db = build_session_factory(engine)()

    open_id = input("Open ID: ")
    name = input("Name: ")
    email = input("Email: ")

    try:
        user, token = create_superuser(db, settings, open_id, name, email)
    finally:
        db.close()
        engine.dispose()

    print(f"Superuser {user.open_id} created successfully")
    print(f"Session token: {token}")


if __name__ == "__main__":
    main()

from dataclasses import replace

from createsuperuser import createsuperuser
from grocery.models import RoleEnum, User
from grocery.security import decode_access_token


def test_create_superuser_mints_admin_session(db, settings):
    user, token = createsuperuser.create_superuser(db, settings, "ops-1", "Ops", "ops@example.com")

    assert user.role == RoleEnum.ADMIN
    assert user.login_method == "cli"
    payload = decode_access_token(settings, token)
    assert payload["sub"] == "ops-1"
    assert payload["user_id"] == user.id


def test_create_superuser_promotes_existing_user(db, settings, customer):
    existing, _ = customer

    user, _ = createsuperuser.create_superuser(db, settings, "customer-1")

    assert user.id == existing.id
    assert user.role == RoleEnum.ADMIN
    assert db.query(User).count() == 1


def test_main_prompts_and_prints_token(monkeypatch, capsys, settings, tmp_path):
    url = f"sqlite:///{tmp_path / 'grocery.db'}"
    monkeypatch.setattr(
        createsuperuser.Settings, "from_env", classmethod(lambda cls: replace(settings, database_url=url))
    )
    answers = iter(["ops-2", "Ops", "ops@example.com"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))

    createsuperuser.main()

    out = capsys.readouterr().out
    assert "Superuser ops-2 created successfully" in out
    assert "Session token: " in out

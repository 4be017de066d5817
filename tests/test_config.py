import pytest
from pydantic import ValidationError as PydanticValidationError

from carnival.core.config_core import Settings

from tests.conftest import ADMIN, AUTHORITY, RECEIVER_1, RECEIVER_2


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def full_settings(**overrides) -> Settings:
    params = dict(
        ADMIN_ADDRESS=ADMIN,
        FEE_RECEIVER_1=RECEIVER_1,
        FEE_RECEIVER_2=RECEIVER_2,
    )
    params.update(overrides)
    return make_settings(**params)


def test_defaults():
    settings = make_settings()
    assert settings.TICKET_PRICE_WEI == 800_000_000_000_000
    assert settings.TICKETS_THRESHOLD == 50
    assert settings.FEE_SHARE_1_PERCENT == 50
    assert settings.VRF_CALLBACK_GAS_LIMIT == 500_000
    assert settings.env_normalized == "prod"
    assert settings.is_prod


@pytest.mark.parametrize(
    "field, value",
    [
        ("TICKET_PRICE_WEI", 0),
        ("TICKETS_THRESHOLD", -1),
        ("VRF_SUBSCRIPTION_ID", 0),
        ("FEE_SHARE_1_PERCENT", 101),
        ("FEE_SHARE_1_PERCENT", -1),
        ("ADMIN_ADDRESS", "0x1234"),
        ("VRF_KEY_HASH", "0xabc"),
    ],
)
def test_invalid_values_are_rejected(field, value):
    with pytest.raises(PydanticValidationError):
        make_settings(**{field: value})


def test_addresses_are_checksummed_and_key_hash_normalized():
    settings = make_settings(ADMIN_ADDRESS=ADMIN.lower(), VRF_KEY_HASH="AB" * 32)
    assert settings.ADMIN_ADDRESS == ADMIN
    assert settings.VRF_KEY_HASH == "0x" + "ab" * 32


def test_blank_address_means_unset():
    assert make_settings(AUTHORITY_ADDRESS="  ").AUTHORITY_ADDRESS is None


@pytest.mark.parametrize(
    "env, expected",
    [("production", "prod"), ("dev", "dev"), ("development", "dev"), ("local", "local"), ("", "prod")],
)
def test_env_normalized(env, expected):
    assert make_settings(ENV=env).env_normalized == expected


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgres://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        ("postgresql://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        ("sqlite:///carnival.db", "sqlite+aiosqlite:///carnival.db"),
        ("sqlite+aiosqlite:///x.db", "sqlite+aiosqlite:///x.db"),
    ],
)
def test_database_url_async(url, expected):
    settings = make_settings(DATABASE_URL=url)
    assert settings.database_url_async() == expected
    assert settings.is_sqlite == expected.startswith("sqlite")


def test_database_url_required():
    with pytest.raises(RuntimeError):
        make_settings().database_url_async()


def test_build_carnival_config_requires_addresses():
    with pytest.raises(RuntimeError, match="FEE_RECEIVER_1"):
        make_settings(ADMIN_ADDRESS=ADMIN, FEE_RECEIVER_2=RECEIVER_2).build_carnival_config()


def test_build_carnival_config_authority_defaults_to_admin():
    config = full_settings(TICKETS_THRESHOLD=7).build_carnival_config()
    assert config.admin == ADMIN
    assert config.authority == ADMIN
    assert config.tickets_threshold == 7
    assert config.fee_receiver_1 == RECEIVER_1

    config = full_settings(AUTHORITY_ADDRESS=AUTHORITY).build_carnival_config()
    assert config.authority == AUTHORITY


def test_debug_dump_hides_dsn():
    dump = full_settings(DATABASE_URL="postgres://user:secret@h/db").debug_dump()
    assert dump["dbUrlSet"] == "yes"
    assert all("secret" not in value for value in dump.values())


def test_create_carnival_from_settings():
    from carnival import carnival_health, create_carnival

    engine = create_carnival(full_settings(TICKETS_THRESHOLD=2))
    assert engine.tickets_threshold == 2
    assert engine.current_round == 1
    health = carnival_health(engine)
    assert health["status"] == "ok"
    assert health["round"] == 1
    assert health["request_pending"] is False

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from config import DEFAULT_REMOTE_ACTOR, Settings, load_public_key_pem
from models import Activity, Follow, Undo, parse_activity


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "SERVER_HOSTNAME",
        "ACTOR_NAME",
        "PUBLIC_KEY",
        "FOLLOWERS",
        "FOLLOWING",
        "DELIVERY_TIMEOUT",
        "REQUEST_LOG_PATH",
        "LOG_LEVEL",
    ):
        # removed again on teardown even if a .env load sets it
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


@pytest.fixture(scope="module")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def test_settings_require_hostname(clean_env):
    with pytest.raises(ValueError):
        Settings.from_env()


def test_settings_defaults(clean_env):
    clean_env.setenv("SERVER_HOSTNAME", "node.example")
    settings = Settings.from_env()
    assert settings.hostname == "node.example"
    assert settings.actor_name == "DEBUG"
    assert settings.public_key_pem == ""
    assert settings.followers == [DEFAULT_REMOTE_ACTOR]
    assert settings.delivery_timeout == 10.0
    assert settings.request_log_path is None
    assert settings.log_level == "INFO"


def test_settings_from_env(clean_env):
    clean_env.setenv("SERVER_HOSTNAME", "node.example")
    clean_env.setenv("ACTOR_NAME", "Alice")
    clean_env.setenv("FOLLOWERS", "https://a.example/u/1, https://b.example/u/2")
    clean_env.setenv("FOLLOWING", "")
    clean_env.setenv("DELIVERY_TIMEOUT", "2.5")
    clean_env.setenv("REQUEST_LOG_PATH", "/tmp/request.log")

    settings = Settings.from_env()
    assert settings.actor_name == "Alice"
    assert settings.followers == ["https://a.example/u/1", "https://b.example/u/2"]
    assert settings.following == []
    assert settings.delivery_timeout == 2.5
    assert settings.request_log_path == "/tmp/request.log"


def test_public_key_from_private_key_file(private_key, tmp_path):
    key_file = tmp_path / "key.pem"
    key_file.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )

    pem = load_public_key_pem(str(key_file))
    assert pem.startswith("-----BEGIN PUBLIC KEY-----")
    assert "PRIVATE" not in pem


def test_public_key_from_pem_text(private_key):
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    assert load_public_key_pem(public_pem) == public_pem


def test_no_public_key():
    assert load_public_key_pem(None) == ""
    assert load_public_key_pem("") == ""


def test_parse_activity_variants():
    assert isinstance(parse_activity({"type": "Follow"}), Follow)
    assert isinstance(parse_activity({"type": "Undo"}), Undo)

    other = parse_activity({"type": "Poke", "extra": 1})
    assert type(other) is Activity
    assert other.to_json() == {"type": "Poke", "extra": 1}

    assert parse_activity({}).type is None


def test_settings_from_env_file(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("SERVER_HOSTNAME=file.example\nLOG_LEVEL=debug\n")

    settings = Settings.from_env(str(env_file))
    assert settings.hostname == "file.example"
    assert settings.log_level == "DEBUG"


def test_parsed_activity_serializes_to_its_source():
    payload = {"type": "Follow", "actor": "https://a.example/u/1", "context": "https://a.example/c/1"}
    follow = parse_activity(payload)
    assert follow.to_json() == payload
    assert "@context" not in follow.to_json()

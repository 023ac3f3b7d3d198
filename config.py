import os
from typing import List, Optional

from cryptography.hazmat.primitives import serialization
from dotenv import load_dotenv
from pydantic import BaseModel


DEFAULT_REMOTE_ACTOR = "https://mstdn.jp/users/macrat"


def load_public_key_pem(key_data: Optional[str]) -> str:
    """Return the PEM of the public key found in ``key_data``.

    ``key_data`` may be PEM text or a path to a PEM file, holding either a
    public key or a private key (whose public half is exported). An unset
    value yields an empty string, meaning no key is configured.
    """
    if not key_data:
        return ""

    if os.path.isfile(key_data):
        with open(key_data, "rb") as key_file:
            raw = key_file.read()
    else:
        raw = key_data.encode()

    try:
        public_key = serialization.load_pem_public_key(raw)
    except ValueError:
        public_key = serialization.load_pem_private_key(raw, password=None).public_key()

    return public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


def split_list(value: Optional[str], default: List[str]) -> List[str]:
    if value is None:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    hostname: str
    software_name: str = "activitypub-sandbox"
    software_version: str = "0.0.1"
    actor_name: str = "DEBUG"
    actor_summary: str = "<p>Debug account.</p>"
    actor_published: str = "2023-08-14T20:38:00+09:00"
    public_key_pem: str = ""
    icon_path: str = "public/icon.png"
    followers: List[str] = [DEFAULT_REMOTE_ACTOR]
    following: List[str] = [DEFAULT_REMOTE_ACTOR]
    delivery_timeout: float = 10.0
    request_log_path: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        load_dotenv(env_file)

        hostname = os.getenv("SERVER_HOSTNAME")
        if not hostname:
            raise ValueError("SERVER_HOSTNAME environment variable is not set")

        defaults = cls(hostname=hostname)
        return cls(
            hostname=hostname,
            actor_name=os.getenv("ACTOR_NAME", defaults.actor_name),
            actor_summary=os.getenv("ACTOR_SUMMARY", defaults.actor_summary),
            actor_published=os.getenv("ACTOR_PUBLISHED", defaults.actor_published),
            public_key_pem=load_public_key_pem(os.getenv("PUBLIC_KEY")),
            icon_path=os.getenv("ICON_PATH", defaults.icon_path),
            followers=split_list(os.getenv("FOLLOWERS"), defaults.followers),
            following=split_list(os.getenv("FOLLOWING"), defaults.following),
            delivery_timeout=float(
                os.getenv("DELIVERY_TIMEOUT", defaults.delivery_timeout)
            ),
            request_log_path=os.getenv("REQUEST_LOG_PATH") or None,
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )

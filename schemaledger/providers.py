"""Enabled sign-in providers, read once from ``AUTH_PROVIDER_*`` environment variables.

Each provider is described declaratively: the credentials it cannot start
without, optional settings, and list-valued settings with their defaults.
``enabled_providers()`` turns the environment into validated provider
records; route registration consumes that list and is not handled here.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

_TRUTHY = {"true", "1", "yes", "on"}


class ProviderConfigError(Exception):
    """Raised when an enabled provider is missing required credentials."""


@dataclass(frozen=True, slots=True)
class ProviderSpec:
    name: str
    env_name: str
    required: tuple[str, ...] = ("client_id", "client_secret")
    optional: tuple[str, ...] = ()
    lists: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def env_prefix(self) -> str:
        return f"AUTH_PROVIDER_{self.env_name}_"


class OAuthProvider(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    credentials: dict[str, str] = Field(repr=False)
    options: dict[str, str] = Field(default_factory=dict)
    lists: dict[str, tuple[str, ...]] = Field(default_factory=dict)

    @property
    def scope(self) -> tuple[str, ...]:
        return self.lists.get("scope", ())


PROVIDER_SPECS: tuple[ProviderSpec, ...] = (
    ProviderSpec(
        "github",
        "GITHUB",
        optional=("authorization_url", "token_url", "user_profile_url"),
        lists={"scope": ("user:email",)},
    ),
    ProviderSpec("google", "GOOGLE", lists={"scope": ("email", "profile")}),
    ProviderSpec(
        "facebook",
        "FACEBOOK",
        lists={"profile_fields": ("email", "photos", "displayName"), "scope": ("email",)},
    ),
    ProviderSpec("twitter", "TWITTER", required=("consumer_key", "consumer_secret")),
    ProviderSpec("linkedin", "LINKEDIN", lists={"scope": ("r_emailaddress", "r_liteprofile")}),
    ProviderSpec(
        "apple",
        "APPLE",
        required=("client_id", "team_id", "key_id", "private_key"),
        lists={"scope": ("name", "email")},
    ),
    ProviderSpec("windowslive", "WINDOWS_LIVE", lists={"scope": ("wl.basic", "wl.emails")}),
    ProviderSpec("spotify", "SPOTIFY", lists={"scope": ("user-read-email", "user-read-private")}),
    ProviderSpec("gitlab", "GITLAB", optional=("base_url",), lists={"scope": ("read_user",)}),
    ProviderSpec("bitbucket", "BITBUCKET"),
    ProviderSpec("strava", "STRAVA", lists={"scope": ("profile:read_all",)}),
    ProviderSpec("discord", "DISCORD", lists={"scope": ("identify", "email")}),
    ProviderSpec("twitch", "TWITCH", lists={"scope": ("user:read:email",)}),
    ProviderSpec(
        "workos",
        "WORKOS",
        optional=("default_domain", "default_organization", "default_connection"),
    ),
    ProviderSpec("azuread", "AZUREAD", optional=("tenant",)),
)


def _is_enabled(value: str | None) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY


def _string_list(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None or not value.strip():
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _build_provider(spec: ProviderSpec, environ: Mapping[str, str]) -> OAuthProvider:
    prefix = spec.env_prefix
    credentials: dict[str, str] = {}
    missing: list[str] = []
    for key in spec.required:
        value = environ.get(prefix + key.upper(), "").strip()
        if value:
            credentials[key] = value
        else:
            missing.append(prefix + key.upper())
    if missing:
        raise ProviderConfigError(f"{spec.name} is enabled but missing {', '.join(missing)}")

    # Keys are usually pasted into env files with escaped newlines.
    if "private_key" in credentials:
        credentials["private_key"] = credentials["private_key"].replace("\\n", "\n")

    options = {
        key: environ[prefix + key.upper()].strip()
        for key in spec.optional
        if environ.get(prefix + key.upper(), "").strip()
    }
    lists = {
        key: _string_list(environ.get(prefix + key.upper()), default)
        for key, default in spec.lists.items()
    }
    return OAuthProvider(name=spec.name, credentials=credentials, options=options, lists=lists)


def enabled_providers(environ: Mapping[str, str] | None = None) -> list[OAuthProvider]:
    """Return every provider whose ``AUTH_PROVIDER_<NAME>_ENABLED`` flag is set.

    Raises ``ProviderConfigError`` for an enabled provider with blank or
    missing required credentials, so misconfiguration stops startup.
    """

    if environ is None:
        environ = os.environ
    return [
        _build_provider(spec, environ)
        for spec in PROVIDER_SPECS
        if _is_enabled(environ.get(spec.env_prefix + "ENABLED"))
    ]


__all__ = [
    "PROVIDER_SPECS",
    "OAuthProvider",
    "ProviderConfigError",
    "ProviderSpec",
    "enabled_providers",
]

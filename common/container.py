"""Composition root: builds the managers once per process and hangs them on the app."""
from dataclasses import dataclass

from fastapi import FastAPI

from .auth import TokenCodec
from .authentication import AuthManager
from .config import Settings
from .roles import RoleManager
from .users import UserManager


@dataclass(frozen=True)
class Managers:
    roles: RoleManager
    users: UserManager
    auth: AuthManager


def build_managers(settings: Settings) -> Managers:
    roles = RoleManager()
    users = UserManager()
    auth = AuthManager(roles, users, TokenCodec.from_settings(settings))
    return Managers(roles=roles, users=users, auth=auth)


def attach_managers(app: FastAPI, settings: Settings) -> Managers:
    managers = build_managers(settings)
    app.state.managers = managers
    return managers

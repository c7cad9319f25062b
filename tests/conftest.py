"""Shared fixtures: an in-memory credential source and a ready session."""

from typing import Dict, Optional

import pytest

from whmapi import PublicAPI
from whmapi.credentials import CredentialSource


class FakeCredentialSource(CredentialSource):
    """Environment and home directories held in dicts instead of the real system."""

    def __init__(
        self,
        env: Optional[Dict[str, str]] = None,
        files: Optional[Dict[str, str]] = None,
        login: str = "root",
    ):
        self.env = dict(env or {})
        self.files = dict(files or {})
        self.login = login
        self.read_paths = []

    def getenv(self, name: str) -> Optional[str]:
        return self.env.get(name)

    def home_dir(self, user: str) -> str:
        return "/root" if user == "root" else f"/home/{user}"

    def read_file(self, path: str) -> Optional[str]:
        self.read_paths.append(path)
        return self.files.get(path)

    def current_user(self) -> str:
        return self.login


@pytest.fixture
def source():
    return FakeCredentialSource()


@pytest.fixture
def client(source):
    api = PublicAPI(
        user="root",
        password="secret",
        host="whm.example.com",
        credential_source=source,
    )
    yield api
    api.close()

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from web3 import Web3

from identity_manager.main import app
from identity_manager.services import get_registry_service
from identity_manager.services.registry import IdentityRegistry


def _account(byte: str) -> str:
    return Web3.to_checksum_address("0x" + byte * 20)


OWNER = _account("a1")
OTHER = _account("b2")
ADMIN = _account("c3")

ROLAND = {
    "id": "184738199010200917",
    "name": "罗兰",
    "gender": 0,
    "birthday": "1990-10-20",
    "nationality": "中国",
    "province": "上海",
    "city": "宝山",
    "document_hashes": ["0x8938398938398938398938398938398938398938398938398938398938398938"],
}

ALLEN = {
    "id": "2000000000000000",
    "name": "Allen",
    "gender": 1,
    "birthday": "1995-11-20",
    "nationality": "英国",
    "province": "伦敦",
    "city": "伦敦",
    "document_hashes": ["0x0fa2398938398938398938398938398938398938398938398938398938398938"],
}


@pytest.fixture
def registry() -> IdentityRegistry:
    return IdentityRegistry(salt="tests")


@pytest.fixture
def client(registry: IdentityRegistry):
    app.dependency_overrides[get_registry_service] = lambda: registry
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def as_caller(account: str) -> dict:
    return {"X-Caller-Address": account}

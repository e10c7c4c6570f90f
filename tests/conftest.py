import itertools
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

# keep test runs off the filesystem, redis and FCM
os.environ["LOG_DIR"] = ""
os.environ["REDIS_URL"] = ""
os.environ["FCM_SERVICE_ACCOUNT_FILE"] = ""

import pytest
from bson import ObjectId

from friendmap.services.friend_request_service import FriendRequestService


MINI_FIELDS = ("username", "fullName", "imgUrl", "userColor")


class FakeUserRepository:
    """In-memory stand-in for UserRepository, same async surface."""

    def __init__(self) -> None:
        self.users: Dict[str, Dict[str, Any]] = {}

    def add(self, username: str, **extra: Any) -> str:
        user_id = str(ObjectId())
        self.users[user_id] = {
            "_id": user_id,
            "id": user_id,
            "username": username,
            "email": f"{username}@example.com",
            "fullName": username.title(),
            "friends": [],
            "fcmTokens": [],
            **extra,
        }
        return user_id

    def _public(self, user: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in user.items() if k != "password"}

    def _mini(self, user: Dict[str, Any]) -> Dict[str, Any]:
        mini = {k: user.get(k) for k in MINI_FIELDS}
        mini.update({"_id": user["_id"], "id": user["_id"]})
        return mini

    async def create_user(self, user: Dict[str, Any]) -> Dict[str, Any]:
        user_id = self.add(user.get("username") or "", **{k: v for k, v in user.items() if k != "username"})
        return self._public(self.users[user_id])

    async def get_user_by_id(self, user_id: str) -> Optional[dict]:
        user = self.users.get(user_id)
        return self._public(user) if user else None

    async def get_user_by_email(self, email: str) -> Optional[dict]:
        for user in self.users.values():
            if user.get("email") == email:
                return dict(user)
        return None

    async def get_users_by_ids(self, user_ids) -> List[dict]:
        return [self._public(self.users[u]) for u in user_ids if u in self.users]

    async def get_mini_by_id(self, user_id: str) -> Optional[dict]:
        user = self.users.get(user_id)
        return self._mini(user) if user else None

    async def get_mini_by_ids(self, user_ids) -> List[dict]:
        return [self._mini(self.users[u]) for u in user_ids if u in self.users]

    async def list_users(self) -> List[dict]:
        return [self._public(u) for u in self.users.values()]

    async def search_by_username(self, txt: str, mini: bool = False, limit: int = 20) -> List[dict]:
        found = [u for u in self.users.values() if txt.lower() in (u.get("username") or "").lower()]
        return [self._mini(u) if mini else self._public(u) for u in found[:limit]]

    async def update_user(self, user_id: str, fields: Dict[str, Any]) -> Optional[dict]:
        if user_id not in self.users:
            return None
        self.users[user_id].update(fields)
        return self._public(self.users[user_id])

    async def delete_user(self, user_id: str) -> bool:
        return self.users.pop(user_id, None) is not None

    async def exists(self, user_id: str) -> bool:
        return user_id in self.users

    async def get_friends(self, user_id: str) -> List[str]:
        user = self.users.get(user_id)
        return list(user["friends"]) if user else []

    async def add_to_friends(self, user_id: str, peer_id: str) -> bool:
        user = self.users.get(user_id)
        if not user:
            return False
        if peer_id not in user["friends"]:
            user["friends"].append(peer_id)
        return True

    async def remove_from_friends(self, user_id: str, peer_id: str) -> bool:
        user = self.users.get(user_id)
        if not user:
            return False
        user["friends"] = [f for f in user["friends"] if f != peer_id]
        return True

    async def add_fcm_token(self, user_id: str, token: str) -> bool:
        user = self.users.get(user_id)
        if not user:
            return False
        if token not in user["fcmTokens"]:
            user["fcmTokens"].append(token)
        return True

    async def clear_fcm_tokens(self, user_id: str) -> bool:
        user = self.users.get(user_id)
        if not user:
            return False
        user["fcmTokens"] = []
        return True

    async def get_fcm_tokens(self, user_id: str) -> List[str]:
        user = self.users.get(user_id)
        return list(user["fcmTokens"]) if user else []

    async def remove_fcm_tokens(self, user_id: str, tokens: List[str]) -> int:
        user = self.users.get(user_id)
        if not user:
            return 0
        before = len(user["fcmTokens"])
        user["fcmTokens"] = [t for t in user["fcmTokens"] if t not in tokens]
        return before - len(user["fcmTokens"])


class FakeFriendRequestRepository:
    """In-memory stand-in for FriendRequestRepository, same async surface."""

    def __init__(self) -> None:
        self.requests: Dict[str, Dict[str, Any]] = {}
        self._seq = itertools.count()

    def _newest_first(self, docs) -> List[dict]:
        return [dict(d) for d in sorted(docs, key=lambda d: (d["createdAt"], d["_seq"]), reverse=True)]

    def _between(self, u1: str, u2: str):
        return [r for r in self.requests.values() if {r["fromUserId"], r["toUserId"]} == {u1, u2}]

    async def insert(self, from_user_id: str, to_user_id: str) -> Optional[Dict[str, Any]]:
        # same guarantee as the partial unique index on pairKey
        if any(d["status"] == "pending" for d in self._between(from_user_id, to_user_id)):
            return None
        now = datetime.now(timezone.utc)
        request_id = str(ObjectId())
        doc = {
            "_id": request_id,
            "id": request_id,
            "fromUserId": from_user_id,
            "toUserId": to_user_id,
            "status": "pending",
            "createdAt": now,
            "updatedAt": now,
            "_seq": next(self._seq),
        }
        self.requests[request_id] = doc
        return self._strip(doc)

    async def find_by_id(self, request_id: str) -> Optional[Dict[str, Any]]:
        doc = self.requests.get(request_id)
        return self._strip(doc) if doc else None

    async def find_between(self, user_id1: str, user_id2: str) -> Optional[Dict[str, Any]]:
        docs = self._newest_first(self._between(user_id1, user_id2))
        return self._strip(docs[0]) if docs else None

    async def find_pending_between(self, user_id1: str, user_id2: str) -> Optional[Dict[str, Any]]:
        docs = [d for d in self._between(user_id1, user_id2) if d["status"] == "pending"]
        return self._strip(docs[0]) if docs else None

    async def list_by_user(self, user_id: str, direction: str, status: str = "pending") -> List[Dict[str, Any]]:
        field = "toUserId" if direction == "received" else "fromUserId"
        docs = [d for d in self.requests.values() if d[field] == user_id and d["status"] == status]
        return [self._strip(d) for d in self._newest_first(docs)]

    async def list_involving(self, user_id: str, status: str = "pending") -> List[Dict[str, Any]]:
        docs = [
            d for d in self.requests.values()
            if user_id in (d["fromUserId"], d["toUserId"]) and d["status"] == status
        ]
        return [self._strip(d) for d in self._newest_first(docs)]

    async def delete_if_pending(self, request_id: str) -> Optional[Dict[str, Any]]:
        doc = self.requests.get(request_id)
        if not doc or doc["status"] != "pending":
            return None
        return self._strip(self.requests.pop(request_id))

    async def update_status_if_pending(self, request_id: str, status: str) -> Optional[Dict[str, Any]]:
        doc = self.requests.get(request_id)
        if not doc or doc["status"] != "pending":
            return None
        doc["status"] = status
        doc["updatedAt"] = datetime.now(timezone.utc)
        return self._strip(doc)

    @staticmethod
    def _strip(doc: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in doc.items() if k != "_seq"}


class RecordingNotifier:

    def __init__(self) -> None:
        self.calls: List[tuple] = []

    async def notify_user(self, user_id, event_type, data, title, body, push_data=None) -> None:
        self.calls.append((user_id, event_type, data))


@pytest.fixture
def user_repo():
    return FakeUserRepository()


@pytest.fixture
def request_repo():
    return FakeFriendRequestRepository()


@pytest.fixture
def service(request_repo, user_repo):
    return FriendRequestService(request_repo, user_repo)


@pytest.fixture
def users(user_repo):
    """Three unrelated users: alice, bob, carol -> ids."""
    return {name: user_repo.add(name) for name in ("alice", "bob", "carol")}


class FakeCursor:
    """Enough of a Motor cursor for repository tests: chaining plus async iteration."""

    def __init__(self, docs: List[dict]) -> None:
        self.docs = docs
        self.sort_args = None
        self.limit_arg = None

    def sort(self, *args, **kwargs):
        self.sort_args = args
        return self

    def limit(self, n: int):
        self.limit_arg = n
        return self

    async def to_list(self, length=None):
        return list(self.docs)

    def __aiter__(self):
        self._it = iter(self.docs)
        return self

    async def __anext__(self):
        try:
            return next(self._it)
        except StopIteration:
            raise StopAsyncIteration

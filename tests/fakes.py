"""
In-memory stand-in for the parts of supabase.Client the services use.

Supports the postgrest query builder chain (select / insert / update /
delete with eq, neq, in_, is_, ilike, order, limit, offset, range,
single, maybe_single), storage buckets and the auth calls. Embedded
resources in select strings are ignored: rows come back as stored.
"""
import re
import threading
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple

from postgrest.exceptions import APIError

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)

# Unique keys enforced on insert, mirroring the database constraints
DEFAULT_UNIQUE = {
    "group_members": [("group_id", "user_id")],
    "post_likes": [("post_id", "user_id")],
    "profiles": [("username",)],
}


def api_error(message: str, code: str) -> APIError:
    return APIError({"message": message, "code": code, "details": None, "hint": None})


class FakeResponse:
    def __init__(self, data: Any, count: Optional[int] = None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.orders: List[Tuple[str, bool]] = []
        self.limit_value: Optional[int] = None
        self.offset_value = 0
        self.single_mode: Optional[str] = None
        self.count_mode: Optional[str] = None
        self.head = False

    def select(self, columns: str = "*", count: Optional[str] = None, head: bool = False):
        self.count_mode = count
        self.head = head
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload: Dict[str, Any]):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column: str, value: Any):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column: str, value: Any):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column: str, values):
        allowed = list(values)
        self.filters.append(lambda row: row.get(column) in allowed)
        return self

    def is_(self, column: str, value: Any):
        expected = None if value in (None, "null") else value
        self.filters.append(lambda row: row.get(column) is expected)
        return self

    def ilike(self, column: str, pattern: str):
        regex = re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$", re.IGNORECASE)
        self.filters.append(lambda row: row.get(column) is not None and bool(regex.match(str(row[column]))))
        return self

    def order(self, column: str, desc: bool = False):
        self.orders.append((column, desc))
        return self

    def limit(self, size: int):
        self.limit_value = size
        return self

    def offset(self, size: int):
        self.offset_value = size
        return self

    def range(self, start: int, end: int):
        self.offset_value = start
        self.limit_value = end - start + 1
        return self

    def single(self):
        self.single_mode = "single"
        return self

    def maybe_single(self):
        self.single_mode = "maybe_single"
        return self

    def matches(self, row: Dict[str, Any]) -> bool:
        return all(check(row) for check in self.filters)

    def execute(self):
        return self.db.execute(self)


class FakeBucket:
    def __init__(self, db: "FakeSupabase", name: str):
        self.db = db
        self.name = name

    def upload(self, path: str, file: bytes, file_options: Optional[Dict[str, str]] = None):
        if self.db.storage_error:
            raise self.db.storage_error
        self.db.files[(self.name, path)] = {"content": file, "options": file_options or {}}
        return SimpleNamespace(path=path, full_path=f"{self.name}/{path}")

    def get_public_url(self, path: str) -> str:
        return f"https://fake.supabase.co/storage/v1/object/public/{self.name}/{path}"

    def remove(self, paths: List[str]):
        removed = []
        for path in paths:
            if self.db.files.pop((self.name, path), None) is not None:
                removed.append({"name": path})
        return removed


class FakeStorage:
    def __init__(self, db: "FakeSupabase"):
        self.db = db

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self.db, bucket)


class FakeAuth:
    """Tokens are plain strings mapped to users; passwords are kept in clear text."""

    def __init__(self):
        self.users: Dict[str, SimpleNamespace] = {}
        self.passwords: Dict[str, str] = {}
        self.tokens: Dict[str, str] = {}
        self.refresh_tokens: Dict[str, str] = {}
        self.sign_ups: List[Dict[str, Any]] = []
        self.signed_out: List[str] = []
        self.admin = SimpleNamespace(sign_out=self._revoke)

    def add_user(self, user_id: str, email: str, password: str = "password123", token: Optional[str] = None) -> str:
        self.users[user_id] = SimpleNamespace(
            id=user_id, email=email, user_metadata={}, created_at=BASE_TIME.isoformat()
        )
        self.passwords[email] = password
        token = token or f"token-{user_id}"
        self.tokens[token] = user_id
        self.refresh_tokens[f"refresh-{user_id}"] = user_id
        return token

    def _session_for(self, user_id: str) -> SimpleNamespace:
        return SimpleNamespace(access_token=f"token-{user_id}", refresh_token=f"refresh-{user_id}")

    def sign_up(self, credentials: Dict[str, Any]):
        self.sign_ups.append(credentials)
        email = credentials["email"]
        if email in self.passwords:
            raise Exception("User already registered")
        user_id = str(uuid.uuid4())
        self.add_user(user_id, email, credentials["password"])
        self.users[user_id].user_metadata = credentials.get("options", {}).get("data", {})
        return SimpleNamespace(user=self.users[user_id], session=None)

    def sign_in_with_password(self, credentials: Dict[str, str]):
        email = credentials["email"]
        if self.passwords.get(email) != credentials["password"]:
            raise Exception("Invalid login credentials")
        user = next(u for u in self.users.values() if u.email == email)
        return SimpleNamespace(user=user, session=self._session_for(user.id))

    def refresh_session(self, refresh_token: str):
        user_id = self.refresh_tokens.get(refresh_token)
        if not user_id:
            raise Exception("Invalid Refresh Token")
        return SimpleNamespace(user=self.users[user_id], session=self._session_for(user_id))

    def get_user(self, jwt: str):
        user_id = self.tokens.get(jwt)
        if not user_id:
            raise Exception("invalid JWT: unable to parse or verify signature")
        return SimpleNamespace(user=self.users[user_id])

    def _revoke(self, jwt: str, scope: str = "global"):
        self.signed_out.append(jwt)
        self.tokens.pop(jwt, None)


class FakeSupabase:
    def __init__(self, unique: Optional[Dict[str, List[Tuple[str, ...]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.unique = dict(DEFAULT_UNIQUE if unique is None else unique)
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.calls: List[Tuple[str, str]] = []
        self.files: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.storage_error: Optional[Exception] = None
        self.storage = FakeStorage(self)
        self.auth = FakeAuth()
        self._lock = threading.RLock()
        self._clock = 0

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    # Test helpers

    def _timestamp(self) -> str:
        self._clock += 1
        return (BASE_TIME + timedelta(seconds=self._clock)).isoformat()

    def _with_defaults(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        stored = dict(row)
        stored.setdefault("id", str(uuid.uuid4()))
        stored.setdefault("created_at", self._timestamp())
        if table == "group_members":
            stored.setdefault("joined_at", stored["created_at"])
        return stored

    def seed(self, table: str, *rows: Dict[str, Any]) -> List[Dict[str, Any]]:
        with self._lock:
            stored = [self._with_defaults(table, row) for row in rows]
            self.tables.setdefault(table, []).extend(stored)
            return [dict(row) for row in stored]

    def rows(self, table: str, **where) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                dict(row) for row in self.tables.get(table, [])
                if all(row.get(k) == v for k, v in where.items())
            ]

    def fail(self, table: str, op: str, error: Optional[Exception] = None) -> None:
        """Make every later `op` on `table` raise."""
        self.failures[(table, op)] = error or api_error(f"{op} on {table} failed", "XX000")

    def calls_to(self, table: str, op: Optional[str] = None) -> int:
        return sum(1 for t, o in self.calls if t == table and (op is None or o == op))

    # Query execution

    def _check_unique(self, table: str, new_rows: List[Dict[str, Any]]) -> None:
        for columns in self.unique.get(table, []):
            seen = {
                tuple(row.get(c) for c in columns)
                for row in self.tables.get(table, [])
            }
            for row in new_rows:
                key = tuple(row.get(c) for c in columns)
                if None in key:
                    continue
                if key in seen:
                    raise api_error(
                        f'duplicate key value violates unique constraint "{table}_{"_".join(columns)}_key"',
                        "23505",
                    )
                seen.add(key)

    def _sorted(self, rows: List[Dict[str, Any]], orders: List[Tuple[str, bool]]) -> List[Dict[str, Any]]:
        for column, desc in reversed(orders):
            present = [r for r in rows if r.get(column) is not None]
            missing = [r for r in rows if r.get(column) is None]
            present.sort(key=lambda r: r[column], reverse=desc)
            # postgres puts nulls last ascending, first descending
            rows = missing + present if desc else present + missing
        return rows

    def execute(self, query: FakeQuery):
        with self._lock:
            self.calls.append((query.table, query.op))
            failure = self.failures.get((query.table, query.op))
            if failure:
                raise failure
            table = self.tables.setdefault(query.table, [])

            if query.op == "insert":
                payload = query.payload if isinstance(query.payload, list) else [query.payload]
                new_rows = [self._with_defaults(query.table, row) for row in payload]
                self._check_unique(query.table, new_rows)
                table.extend(new_rows)
                return FakeResponse([dict(row) for row in new_rows])

            matched = [row for row in table if query.matches(row)]

            if query.op == "update":
                for row in matched:
                    row.update(query.payload)
                return FakeResponse([dict(row) for row in matched])

            if query.op == "delete":
                self.tables[query.table] = [row for row in table if not query.matches(row)]
                return FakeResponse([dict(row) for row in matched])

            rows = self._sorted(matched, query.orders)
            total = len(rows)
            rows = rows[query.offset_value:]
            if query.limit_value is not None:
                rows = rows[:query.limit_value]
            data = [dict(row) for row in rows]
            count = total if query.count_mode else None

            if query.single_mode == "maybe_single":
                if len(data) > 1:
                    raise api_error("JSON object requested, multiple (or no) rows returned", "PGRST116")
                return FakeResponse(data[0], count) if data else None
            if query.single_mode == "single":
                if len(data) != 1:
                    raise api_error("JSON object requested, multiple (or no) rows returned", "PGRST116")
                return FakeResponse(data[0], count)
            if query.head:
                return FakeResponse([], count)
            return FakeResponse(data, count)

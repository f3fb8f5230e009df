import pytest

from bookstore.accounts import AccountStore
from bookstore.errors import Conflict, InvalidCredentials
from bookstore.schemas import AdminRegistration, Registration
from bookstore.security import hash_password, verify_password
from bookstore.sessions import SessionStore

pytestmark = pytest.mark.anyio


def registration(name="alice", password="wonderland"):
    return Registration(name=name, lastname="Liddell", email=f"{name}@example.com", age=30, add="Oxford", psw=password)


class TestPasswords:
    def test_hash_round_trip(self):
        stored = hash_password("hunter2")
        assert stored != "hunter2"
        assert verify_password("hunter2", stored)
        assert not verify_password("hunter3", stored)

    def test_same_password_hashes_differently(self):
        assert hash_password("x") != hash_password("x")

    @pytest.mark.parametrize(
        "stored",
        [
            None,
            "",
            "plain-text-password",
            "md5$1$00$00",
            "pbkdf2_sha256$abc$zz$00",
            "pbkdf2:sha256:abc$zz$00",
            "scrypt:x:y:z$salt$00",
        ],
    )
    def test_malformed_hash_never_verifies(self, stored):
        assert not verify_password("x", stored)


class TestUsers:
    async def test_register_stores_hash_not_password(self, db):
        accounts = AccountStore(db)
        saved = await accounts.register_user(registration())

        assert "password_hash" not in saved
        raw = await db["users"].find_one({"firstname": "alice"})
        assert raw["password_hash"] != "wonderland"
        assert raw["address"] == "Oxford"
        assert "password" not in raw

    async def test_register_taken_name_conflicts(self, db):
        accounts = AccountStore(db)
        await accounts.register_user(registration())
        with pytest.raises(Conflict):
            await accounts.register_user(registration(password="other"))

    async def test_authenticate_user(self, db):
        accounts = AccountStore(db)
        saved = await accounts.register_user(registration())

        user = await accounts.authenticate_user("alice", "wonderland")
        assert user["id"] == saved["id"]
        assert "password_hash" not in user

        with pytest.raises(InvalidCredentials):
            await accounts.authenticate_user("alice", "wrong")
        with pytest.raises(InvalidCredentials):
            await accounts.authenticate_user("bob", "wonderland")

    async def test_get_user_with_bad_id_returns_none(self, db):
        assert await AccountStore(db).get_user("not-an-object-id") is None

    async def test_list_users_hides_hashes(self, db):
        accounts = AccountStore(db)
        await accounts.register_user(registration("alice"))
        await accounts.register_user(registration("bob"))

        users = await accounts.list_users()
        assert [u["firstname"] for u in users] == ["alice", "bob"]
        assert all("password_hash" not in u for u in users)


class TestAdmins:
    async def test_admin_and_user_namespaces_are_separate(self, db):
        accounts = AccountStore(db)
        await accounts.create_admin(AdminRegistration(name="alice", psw="admin-pass"))
        await accounts.register_user(registration())

        admin = await accounts.authenticate_admin("alice", "admin-pass")
        assert admin["name"] == "alice"
        with pytest.raises(InvalidCredentials):
            await accounts.authenticate_admin("alice", "wonderland")

    async def test_ensure_admin_creates_once(self, db):
        accounts = AccountStore(db)

        created = await accounts.ensure_admin("owner", "first-pass")
        assert created["name"] == "owner"
        assert await accounts.ensure_admin("owner", "second-pass") is None

        # The first password stays in force.
        await accounts.authenticate_admin("owner", "first-pass")
        with pytest.raises(InvalidCredentials):
            await accounts.authenticate_admin("owner", "second-pass")


class TestSessions:
    async def test_resolve_checks_role(self, db):
        sessions = SessionStore(db)
        token = await sessions.create("acc-1", "user")

        assert await sessions.resolve(token, "user") == "acc-1"
        assert await sessions.resolve(token, "admin") is None
        assert await sessions.resolve(None, "user") is None
        assert await sessions.resolve("bogus", "user") is None

    async def test_session_holds_only_identity(self, db):
        token = await SessionStore(db).create("acc-1", "user")
        doc = await db["sessions"].find_one({"token": token})
        assert set(doc) == {"_id", "token", "account_id", "role", "created_at"}

    async def test_destroy(self, db):
        sessions = SessionStore(db)
        token = await sessions.create("acc-1", "user")
        await sessions.destroy(token)
        assert await sessions.resolve(token, "user") is None

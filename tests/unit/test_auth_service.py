"""Unit tests for users, passwords, tokens and sessions."""

import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pendulum
import pytest
from pytest_mock import MockerFixture

from reqtrack.auth import (
    PAT_PREFIX,
    AuthService,
    LoginResult,
    PasswordHasher,
    PATCreate,
    Principal,
    RefreshToken,
    TokenCodec,
    User,
    UserCreate,
    UserUpdate,
    hash_secret,
    lookup_prefix,
    require_role,
    validate_password_strength,
)
from reqtrack.enums import AuthMethod, Role
from reqtrack.exceptions import (
    AuthenticationError,
    ConfigError,
    DuplicateError,
    ForbiddenError,
    InUseError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    InvalidTokenError,
    NotFoundError,
    TokenExpiredError,
    ValidationError,
)
from reqtrack.planning import EpicCreate
from reqtrack.services import Services
from reqtrack.store import Transaction
from reqtrack.utils import format_timestamp

SECRET = "unit-test-signing-secret-of-32-chars!"


class TestPasswords:
    def test_hash_and_verify(self) -> None:
        hasher = PasswordHasher()
        digest = hasher.hash("correct horse")

        assert digest != "correct horse"
        assert hasher.verify(digest, "correct horse")
        assert not hasher.verify(digest, "wrong horse")

    def test_malformed_hash_does_not_verify(self) -> None:
        assert not PasswordHasher().verify("not-a-hash", "anything")

    def test_minimum_length(self) -> None:
        validate_password_strength("12345678")
        with pytest.raises(ValidationError) as exc_info:
            validate_password_strength("1234567", field="new_password")

        assert exc_info.value.field == "new_password"


class TestSecrets:
    def test_hash_secret_is_sha256_hex(self) -> None:
        assert len(hash_secret("abc")) == 64
        assert hash_secret("abc") == hash_secret("abc")

    def test_lookup_prefix(self) -> None:
        assert lookup_prefix("abcdefghijkl") == "abcdefgh"


class TestTokenCodec:
    def test_short_secret_rejected(self) -> None:
        with pytest.raises(ConfigError, match="auth.secret"):
            _ = TokenCodec("too-short")

    def test_round_trip_claims(self, admin: User) -> None:
        codec = TokenCodec(SECRET)

        token, expires_at = codec.issue(admin)
        claims = codec.validate(token)

        assert claims.user_id == admin.id
        assert claims.role is Role.ADMINISTRATOR
        assert claims.exp == int(expires_at.timestamp())

    def test_tokens_issued_together_differ(self, admin: User) -> None:
        codec = TokenCodec(SECRET)

        assert codec.issue(admin)[0] != codec.issue(admin)[0]

    def test_expired(self, admin: User) -> None:
        codec = TokenCodec(SECRET, ttl=timedelta(seconds=-30))
        token, _ = codec.issue(admin)

        with pytest.raises(TokenExpiredError) as exc_info:
            _ = codec.validate(token)

        assert exc_info.value.code == "TOKEN_EXPIRED"

    def test_wrong_signature(self, admin: User) -> None:
        token, _ = TokenCodec(SECRET).issue(admin)
        other = TokenCodec("another-signing-secret-of-32-characters")

        with pytest.raises(InvalidTokenError) as exc_info:
            _ = other.validate(token)

        assert exc_info.value.code == "INVALID_TOKEN"

    def test_garbage(self) -> None:
        with pytest.raises(InvalidTokenError):
            _ = TokenCodec(SECRET).validate("not.a.jwt")


class TestUserService:
    def test_create_hides_hash(self, services: Services) -> None:
        user = services.users.create(
            UserCreate(username="alice", email="alice@example.com", password="password123")
        )

        assert user.role is Role.USER
        assert not hasattr(user, "password_hash")
        assert services.users.get_record(user.id).password_hash != "password123"

    def test_duplicate_username(self, services: Services) -> None:
        data = UserCreate(username="bob", email="bob@example.com", password="password123")
        _ = services.users.create(data)

        with pytest.raises(DuplicateError):
            _ = services.users.create(
                UserCreate(username="bob", email="other@example.com", password="password123")
            )

    def test_short_password(self, services: Services) -> None:
        with pytest.raises(ValidationError):
            _ = services.users.create(
                UserCreate(username="carol", email="carol@example.com", password="short")
            )

    def test_list_by_role(
        self, services: Services, admin: User, make_user: Callable[..., User]
    ) -> None:
        _ = make_user(Role.COMMENTER)

        page = services.users.list(role=Role.ADMINISTRATOR)

        assert [u.id for u in page.data] == [admin.id]
        assert page.total_count == 1

    def test_update_role(self, services: Services, make_user: Callable[..., User]) -> None:
        user = make_user()

        updated = services.users.update(user.id, UserUpdate(role=Role.COMMENTER))

        assert updated.role is Role.COMMENTER

    def test_delete_referenced_user(self, services: Services, admin: User) -> None:
        _ = services.epics.create(EpicCreate(title="Owned"), creator_id=admin.id)

        with pytest.raises(InUseError):
            services.users.delete(admin.id)

    def test_delete_unreferenced_user(
        self, services: Services, make_user: Callable[..., User]
    ) -> None:
        user = make_user()

        services.users.delete(user.id)

        with pytest.raises(NotFoundError):
            _ = services.users.get(user.id)


class TestPersonalAccessTokens:
    def test_create_and_validate(self, services: Services, admin: User) -> None:
        created = services.pats.create(admin.id, PATCreate(name="ci"))

        assert created.token.startswith(PAT_PREFIX)
        assert created.personal_access_token.scopes == ["full_access"]
        assert services.pats.validate(created.token).id == admin.id
        assert services.pats.get(created.personal_access_token.id, admin.id).last_used_at

    def test_duplicate_name(self, services: Services, admin: User) -> None:
        _ = services.pats.create(admin.id, PATCreate(name="ci"))

        with pytest.raises(DuplicateError):
            _ = services.pats.create(admin.id, PATCreate(name="ci"))

    def test_past_expiry_rejected(self, services: Services, admin: User) -> None:
        with pytest.raises(ValidationError):
            _ = services.pats.create(
                admin.id,
                PATCreate(name="old", expires_at=pendulum.now("UTC").subtract(days=1)),
            )

    def test_unknown_token(self, services: Services) -> None:
        with pytest.raises(InvalidTokenError):
            _ = services.pats.validate(f"{PAT_PREFIX}doesnotexist")

    def test_revoke_other_users_token(
        self, services: Services, admin: User, make_user: Callable[..., User]
    ) -> None:
        created = services.pats.create(admin.id, PATCreate(name="ci"))
        other = make_user()

        with pytest.raises(NotFoundError):
            services.pats.revoke(created.personal_access_token.id, other.id)

        services.pats.revoke(created.personal_access_token.id, admin.id)
        with pytest.raises(InvalidTokenError):
            _ = services.pats.validate(created.token)

    def test_expired_token_and_cleanup(self, services: Services, admin: User) -> None:
        created = services.pats.create(
            admin.id,
            PATCreate(name="soon", expires_at=pendulum.now("UTC").add(hours=1)),
        )
        with services.store.transaction() as tx:
            _ = tx.update(
                "personal_access_tokens",
                {"expires_at": format_timestamp(pendulum.now("UTC").subtract(hours=1))},
                key_value=str(created.personal_access_token.id),
            )

        with pytest.raises(TokenExpiredError):
            _ = services.pats.validate(created.token)
        assert services.pats.cleanup_expired() == 1
        assert services.pats.cleanup_expired() == 0


class TestAuthService:
    def test_login(self, services: Services, make_user: Callable[..., User]) -> None:
        user = make_user(password="user-password")

        result = services.auth.login(user.username, "user-password")

        assert result.user.id == user.id
        assert result.token_type == "Bearer"
        assert services.auth.authenticate(f"Bearer {result.token}").user.id == user.id

    def test_login_wrong_password(
        self, services: Services, make_user: Callable[..., User]
    ) -> None:
        user = make_user()

        with pytest.raises(InvalidCredentialsError):
            _ = services.auth.login(user.username, "not-the-password")

    def test_login_unknown_user(self, services: Services) -> None:
        with pytest.raises(InvalidCredentialsError):
            _ = services.auth.login("ghost", "whatever-password")

    def test_refresh_rotates(self, services: Services, admin: User) -> None:
        first = services.auth.login(admin.username, "admin-password")

        second = services.auth.refresh(first.refresh_token)

        assert second.refresh_token != first.refresh_token
        with pytest.raises(InvalidRefreshTokenError) as exc_info:
            _ = services.auth.refresh(first.refresh_token)
        assert exc_info.value.code == "INVALID_REFRESH_TOKEN"

    def test_concurrent_refresh_of_one_token_rotates_once(
        self, services: Services, admin: User, mocker: MockerFixture
    ) -> None:
        session = services.auth.login(admin.username, "admin-password")
        barrier = threading.Barrier(2)
        find_refresh = AuthService._find_refresh  # noqa: SLF001

        def find_then_wait(tx: Transaction, secret: str) -> RefreshToken | None:
            # Both callers see the row before either deletes it
            stored = find_refresh(tx, secret)
            _ = barrier.wait(timeout=10)
            return stored

        _ = mocker.patch.object(AuthService, "_find_refresh", side_effect=find_then_wait)

        def attempt() -> LoginResult | InvalidRefreshTokenError:
            try:
                return services.auth.refresh(session.refresh_token)
            except InvalidRefreshTokenError as e:
                return e

        with ThreadPoolExecutor(max_workers=2) as pool:
            outcomes = list(pool.map(lambda _: attempt(), range(2)))

        issued = [o for o in outcomes if isinstance(o, LoginResult)]
        rejected = [o for o in outcomes if isinstance(o, InvalidRefreshTokenError)]
        assert len(issued) == 1
        assert len(rejected) == 1
        assert rejected[0].code == "INVALID_REFRESH_TOKEN"
        with services.store.transaction() as tx:
            remaining = tx.count(
                "SELECT count(*) FROM refresh_tokens WHERE user_id = ?", (str(admin.id),)
            )
        assert remaining == 1

    def test_logout_revokes_refresh(self, services: Services, admin: User) -> None:
        session = services.auth.login(admin.username, "admin-password")

        services.auth.logout(session.refresh_token)
        services.auth.logout(session.refresh_token)

        with pytest.raises(InvalidRefreshTokenError):
            _ = services.auth.refresh(session.refresh_token)

    def test_change_password(self, services: Services, admin: User) -> None:
        session = services.auth.login(admin.username, "admin-password")

        services.auth.change_password(admin.id, "admin-password", "new-admin-password")

        with pytest.raises(InvalidRefreshTokenError):
            _ = services.auth.refresh(session.refresh_token)
        assert services.auth.login(admin.username, "new-admin-password").user.id == admin.id

    def test_change_password_wrong_current(self, services: Services, admin: User) -> None:
        with pytest.raises(InvalidCredentialsError):
            services.auth.change_password(admin.id, "nope-nope", "new-admin-password")

    def test_change_password_same(self, services: Services, admin: User) -> None:
        with pytest.raises(ValidationError):
            services.auth.change_password(admin.id, "admin-password", "admin-password")

    def test_authenticate_pat(self, services: Services, admin: User) -> None:
        created = services.pats.create(admin.id, PATCreate(name="cli"))

        principal = services.auth.authenticate(f"Bearer {created.token}")

        assert principal.method is AuthMethod.PAT
        assert principal.user.id == admin.id

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer "])
    def test_authenticate_malformed_header(
        self, services: Services, header: str | None
    ) -> None:
        with pytest.raises(AuthenticationError):
            _ = services.auth.authenticate(header)

    def test_cleanup_is_repeatable(self, services: Services) -> None:
        first = services.auth.cleanup_expired_tokens()
        second = services.auth.cleanup_expired_tokens()

        assert first.refresh_tokens == second.refresh_tokens == 0


class TestRequireRole:
    def test_higher_role_satisfies(self, admin_principal: Principal) -> None:
        require_role(admin_principal, Role.USER)

    def test_lower_role_forbidden(
        self, make_user: Callable[..., User]
    ) -> None:
        principal = Principal(user=make_user(Role.COMMENTER), method=AuthMethod.JWT)

        with pytest.raises(ForbiddenError):
            require_role(principal, Role.USER)

import pytest

from memberhub.core.security import PasswordHasher, SecretManager, SessionSigner


@pytest.fixture()
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


def test_hash_is_salted_bcrypt(hasher):
    first = hasher.hash("secret1")
    second = hasher.hash("secret1")
    assert first.startswith("$2b$04$")
    assert first != "secret1"
    assert first != second


def test_verify_accepts_right_password_only(hasher):
    hashed = hasher.hash("secret1")
    assert hasher.verify("secret1", hashed)
    assert not hasher.verify("secret2", hashed)


def test_verify_rejects_malformed_hash(hasher):
    assert not hasher.verify("secret1", "not-a-hash")
    assert not hasher.verify("secret1", "")


def test_default_cost_factor_is_12():
    hashed = PasswordHasher().hash("secret1")
    assert hashed.startswith("$2b$12$")


def test_dummy_verify_runs(hasher):
    hasher.dummy_verify()


def test_secret_manager_rejects_other_key():
    token = SecretManager("one").encrypt('{"username": "alice"}')
    assert "alice" not in token
    assert SecretManager("one").decrypt(token) == '{"username": "alice"}'
    with pytest.raises(ValueError):
        SecretManager("two").decrypt(token)


def test_session_signer_rejects_tampered_token():
    signer = SessionSigner("cookie-secret")
    token = signer.dumps({"sid": "abc"})
    assert signer.loads(token, max_age=60) == {"sid": "abc"}
    with pytest.raises(ValueError):
        signer.loads(token + "x", max_age=60)
    with pytest.raises(ValueError):
        SessionSigner("other-secret").loads(token, max_age=60)

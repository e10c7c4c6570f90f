from friendmap.utils.security import create_login_token, decode_login_token, hash_password, verify_password


def test_password_hash_roundtrip():
    hashed = hash_password("s3cret!")

    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_against_non_bcrypt_value():
    assert not verify_password("x", "")
    assert not verify_password("x", "plain-text")


def test_login_token_carries_minimal_identity():
    token = create_login_token({"_id": "abc", "fullName": "Alice", "isAdmin": True, "email": "a@example.com", "friends": ["x"]})

    payload = decode_login_token(token)

    assert payload == {"_id": "abc", "fullName": "Alice", "isAdmin": True}


def test_tampered_or_missing_token():
    token = create_login_token({"_id": "abc", "fullName": "Alice"})

    assert decode_login_token(token[:-4] + "AAAA") is None
    assert decode_login_token("not-a-token") is None
    assert decode_login_token(None) is None
    assert decode_login_token("") is None


def test_token_without_user_id_is_rejected():
    assert decode_login_token(create_login_token({"fullName": "Nobody"})) is None

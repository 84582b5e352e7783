from utils.tokens import (
    JOIN_CODE_ALPHABET,
    JOIN_CODE_LENGTH,
    generate_id,
    generate_join_code,
    hash_token,
    issue_token,
    normalize_join_code,
)


def test_hash_token_is_deterministic_sha256_hex():
    digest = hash_token("secret-token")
    assert digest == hash_token("secret-token")
    assert len(digest) == 64
    assert int(digest, 16) >= 0


def test_hash_token_differs_per_input():
    assert hash_token("a") != hash_token("b")


def test_hash_token_known_value():
    # sha256("abc")
    assert hash_token("abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


def test_issue_token_has_enough_entropy_and_does_not_repeat():
    tokens = {issue_token() for _ in range(200)}
    assert len(tokens) == 200
    # 32 random bytes, base64url without padding
    assert all(len(token) >= 43 for token in tokens)


def test_join_code_uses_unambiguous_alphabet():
    for _ in range(50):
        code = generate_join_code()
        assert len(code) == JOIN_CODE_LENGTH
        assert set(code) <= set(JOIN_CODE_ALPHABET)
    assert not set("01IO") & set(JOIN_CODE_ALPHABET)


def test_generate_id_is_opaque_hex():
    record_id = generate_id()
    assert len(record_id) == 16
    int(record_id, 16)


def test_normalize_join_code():
    assert normalize_join_code("  ab3k9z ") == "AB3K9Z"

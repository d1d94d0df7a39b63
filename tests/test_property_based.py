"""
Property-based tests for the private token SDK.

These tests verify that properties hold true across many random inputs.
"""
from hypothesis import given, settings, strategies as st

from private_token_sdk.cipher import PrivateKey, decrypt, encrypt
from private_token_sdk.cipher.ec_constants import SECP256K1_MAX, SECP256K1_MIN
from private_token_sdk.constants import MAX_UINT256
from private_token_sdk.exceptions import DecryptionError
from private_token_sdk.models import TransferPayload
from private_token_sdk.utils import from_base_units, to_base_units

amount_strategy = st.integers(min_value=0, max_value=MAX_UINT256)
scalar_strategy = st.integers(min_value=SECP256K1_MIN, max_value=SECP256K1_MAX)
address_strategy = st.binary(min_size=20, max_size=20).map(lambda b: "0x" + b.hex())


@settings(max_examples=50, deadline=None)
@given(amount=amount_strategy, secret=scalar_strategy)
def test_encrypt_decrypt_roundtrip(amount, secret):
    """Decrypting with the matching key always yields the original amount."""
    key = PrivateKey.from_int(secret)
    assert decrypt(key, encrypt(key.public_key, amount)) == amount


@settings(max_examples=25, deadline=None)
@given(amount=amount_strategy, secret=scalar_strategy, other=scalar_strategy)
def test_wrong_key_never_decrypts(amount, secret, other):
    """A different key is always rejected, never decrypted to some other amount."""
    if secret == other:
        return
    ciphertext = encrypt(PrivateKey.from_int(secret).public_key, amount)
    try:
        decrypt(PrivateKey.from_int(other), ciphertext)
    except DecryptionError:
        pass
    else:
        raise AssertionError("ciphertext decrypted under the wrong key")


@settings(max_examples=50, deadline=None)
@given(
    cipher=st.binary(min_size=1, max_size=200),
    sender=address_strategy,
    recipient=address_strategy,
)
def test_transfer_payload_params_roundtrip(cipher, sender, recipient):
    payload = TransferPayload(encrypted_amount=cipher, sender=sender.upper().replace("0X", "0x"), recipient=recipient)
    params = payload.to_params()

    assert params == params.lower()
    assert len(params.split(" ")) == 3
    parsed = TransferPayload.from_params(params)
    assert parsed.encrypted_amount == cipher
    assert parsed.sender == sender.lower()
    assert parsed.recipient == recipient.lower()


@settings(max_examples=100)
@given(value=st.integers(min_value=0, max_value=10**40), decimals=st.integers(min_value=0, max_value=30))
def test_base_units_roundtrip(value, decimals):
    assert to_base_units(from_base_units(value, decimals), decimals) == value

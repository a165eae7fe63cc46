# Tests for the envelope cipher
# Covers: passphrase and key envelopes, probabilistic encryption, the
#         binary layout, tamper/truncation detection, unknown versions,
#         out-of-range KDF headers, cross-configuration decryption

import pytest

from strongbox.core.exceptions import UnsealError, ValidationError
from strongbox.crypto.envelope import (
    KDF_HKDF,
    KDF_SCRYPT,
    MAGIC,
    NONCE_LENGTH,
    SALT_LENGTH,
    TAG_LENGTH,
    EnvelopeCipher,
    parse_envelope,
)

HEADER_LENGTH = 11 + SALT_LENGTH + NONCE_LENGTH
KEY = bytes(range(32))


# ── Passphrase envelopes ─────────────────────────────────────────────


class TestPassphraseEnvelope:
    def test_roundtrip(self, cipher):
        blob = cipher.seal("S3cret!", b"hunter2")
        assert cipher.open("S3cret!", blob) == b"hunter2"

    def test_empty_plaintext_roundtrip(self, cipher):
        assert cipher.open("pw", cipher.seal("pw", b"")) == b""

    def test_str_and_bytes_passphrase_are_equivalent(self, cipher):
        blob = cipher.seal("pässword", b"data")
        assert cipher.open("pässword".encode("utf-8"), blob) == b"data"
        assert cipher.open(bytearray("pässword".encode("utf-8")), blob) == b"data"

    def test_sealing_is_probabilistic(self, cipher):
        first = cipher.seal("S3cret!", b"hunter2")
        second = cipher.seal("S3cret!", b"hunter2")
        assert first != second
        assert first[11:11 + SALT_LENGTH] != second[11:11 + SALT_LENGTH]

    def test_wrong_passphrase_fails_generically(self, cipher):
        blob = cipher.seal("right", b"payload")
        with pytest.raises(UnsealError) as exc:
            cipher.open("wrong", blob)
        assert str(exc.value) == "unseal failed"

    def test_layout(self, cipher):
        blob = cipher.seal("pw", b"abc")
        assert blob[:4] == MAGIC
        assert blob[4] == 1                      # version
        assert blob[5] == KDF_SCRYPT
        assert blob[6] == 1                      # ChaCha20-Poly1305
        assert blob[7] == SALT_LENGTH
        assert blob[8:11] == bytes([10, 8, 1])   # log2(N), r, p
        assert len(blob) == HEADER_LENGTH + 3 + TAG_LENGTH

    def test_parse_envelope_reports_parameters(self, cipher):
        header = parse_envelope(cipher.seal("pw", b"abc"))
        assert header.version == 1
        assert header.kdf == KDF_SCRYPT
        assert header.kdf_params == (10, 8, 1)
        assert len(header.salt) == SALT_LENGTH
        assert len(header.nonce) == NONCE_LENGTH
        assert len(header.body) == 3 + TAG_LENGTH


# ── Tampering and malformed input ────────────────────────────────────


class TestTamperDetection:
    @pytest.mark.parametrize("offset", [
        0,                        # magic
        4,                        # version
        6,                        # aead id
        9,                        # scrypt r
        11,                       # salt
        11 + SALT_LENGTH,         # nonce
        HEADER_LENGTH,            # ciphertext
        -1,                       # tag
    ])
    def test_flipping_any_byte_fails(self, cipher, offset):
        blob = bytearray(cipher.seal("pw", b"sensitive"))
        blob[offset] ^= 0x01
        with pytest.raises(UnsealError):
            cipher.open("pw", bytes(blob))

    def test_truncated_envelope_fails(self, cipher):
        blob = cipher.seal("pw", b"sensitive")
        for length in (0, 3, 10, HEADER_LENGTH, len(blob) - 1):
            with pytest.raises(UnsealError):
                cipher.open("pw", blob[:length])

    def test_unknown_version_fails(self, cipher):
        blob = bytearray(cipher.seal("pw", b"x"))
        blob[4] = 99
        with pytest.raises(UnsealError):
            parse_envelope(bytes(blob))

    def test_out_of_range_scrypt_cost_is_rejected_before_derivation(self, cipher):
        blob = bytearray(cipher.seal("pw", b"x"))
        blob[8] = 40  # 2^40 would exhaust memory
        with pytest.raises(UnsealError):
            cipher.open("pw", bytes(blob))

    def test_combined_scrypt_cost_over_ceiling_is_rejected(self, cipher, monkeypatch):
        blob = bytearray(cipher.seal("pw", b"x"))
        # each value in range, together 128 * 32 * 2^22 * 1 bytes
        blob[8] = 22
        blob[9] = 32

        def no_derive(*args):
            raise AssertionError("derivation must not run")

        monkeypatch.setattr("strongbox.crypto.envelope._derive", no_derive)
        with pytest.raises(UnsealError) as exc:
            cipher.open("pw", bytes(blob))
        assert str(exc.value) == "unseal failed"

    def test_kdf_out_of_memory_fails_generically(self, cipher, monkeypatch):
        blob = cipher.seal("pw", b"x")

        def out_of_memory(*args):
            raise MemoryError("Not enough memory to derive key")

        monkeypatch.setattr("strongbox.crypto.envelope._derive", out_of_memory)
        with pytest.raises(UnsealError):
            cipher.open("pw", blob)

    def test_garbage_fails(self, cipher):
        with pytest.raises(UnsealError):
            cipher.open("pw", b"definitely not an envelope at all, not even close")

    def test_peek_kdf_on_garbage_fails(self):
        with pytest.raises(UnsealError):
            EnvelopeCipher.peek_kdf(b"nope")


# ── Key envelopes ────────────────────────────────────────────────────


class TestKeyEnvelope:
    def test_roundtrip(self, cipher):
        blob = cipher.seal_with_key(KEY, b"field value")
        assert cipher.open_with_key(KEY, blob) == b"field value"

    def test_declares_hkdf(self, cipher):
        blob = cipher.seal_with_key(KEY, b"x")
        assert blob[5] == KDF_HKDF
        assert blob[8:11] == b"\x00\x00\x00"
        assert EnvelopeCipher.peek_kdf(blob) == KDF_HKDF

    def test_wrong_key_fails(self, cipher):
        blob = cipher.seal_with_key(KEY, b"x")
        with pytest.raises(UnsealError):
            cipher.open_with_key(bytes(32), blob)

    def test_short_key_rejected(self, cipher):
        with pytest.raises(ValidationError):
            cipher.seal_with_key(b"too short", b"x")

    def test_entry_points_do_not_cross(self, cipher):
        key_blob = cipher.seal_with_key(KEY, b"x")
        pass_blob = cipher.seal(KEY, b"x")
        with pytest.raises(UnsealError):
            cipher.open(KEY, key_blob)
        with pytest.raises(UnsealError):
            cipher.open_with_key(KEY, pass_blob)


# ── Configuration and compatibility ──────────────────────────────────


class TestConfiguration:
    def test_aesgcm_roundtrip(self):
        aes = EnvelopeCipher(scrypt_log2_n=10, aead="aesgcm")
        blob = aes.seal("pw", b"payload")
        assert blob[6] == 2
        assert aes.open("pw", blob) == b"payload"

    def test_open_honours_envelope_not_configuration(self):
        writer = EnvelopeCipher(scrypt_log2_n=11, scrypt_r=4, aead="aesgcm")
        reader = EnvelopeCipher(scrypt_log2_n=10, aead="chacha20")
        blob = writer.seal("pw", b"old blob")
        assert reader.open("pw", blob) == b"old blob"

    @pytest.mark.parametrize("kwargs", [
        {"scrypt_log2_n": 9},
        {"scrypt_log2_n": 23},
        {"scrypt_r": 0},
        {"scrypt_p": 17},
        {"scrypt_log2_n": 22, "scrypt_r": 32},
        {"aead": "rot13"},
    ])
    def test_invalid_parameters_rejected(self, kwargs):
        with pytest.raises(ValidationError):
            EnvelopeCipher(**kwargs)

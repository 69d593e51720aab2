import base64
import binascii
import json
from collections.abc import Mapping

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from app.core.config import Settings
from app.core.errors import ErrorKind, ServiceError

ENCRYPTED_CONTENT_TYPE = "application/octet-stream"
PBKDF2_ITERATIONS = 10_000
KEY_LENGTH = 32


class PayloadDecodeError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.INTERNAL, message)


def derive_key(password: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA1(), length=KEY_LENGTH, salt=salt, iterations=PBKDF2_ITERATIONS)
    return kdf.derive(password.encode("utf-8"))


class PayloadCodec:
    """Turns request bodies into plain JSON data.

    Encrypted bodies are flagged by the client with an
    ``application/octet-stream`` content type and carry
    ``<iv base64>:<salt hex>:<ciphertext base64>`` (AES-256-CBC, key derived
    with PBKDF2-HMAC-SHA1 from the shared password).
    """

    def __init__(self, password: str) -> None:
        self.password = password

    @classmethod
    def from_settings(cls, settings: Settings) -> "PayloadCodec":
        return cls(password=settings.encryption_password)

    @staticmethod
    def is_encrypted(headers: Mapping[str, str]) -> bool:
        content_type = headers.get("content-type", "")
        return content_type.split(";", 1)[0].strip().lower() == ENCRYPTED_CONTENT_TYPE

    def decrypt(self, raw: bytes | str):
        try:
            text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            iv_b64, salt_hex, ciphertext_b64 = text.strip().split(":")
            iv = base64.b64decode(iv_b64, validate=True)
            salt = bytes.fromhex(salt_hex)
            ciphertext = base64.b64decode(ciphertext_b64, validate=True)
        except (ValueError, binascii.Error) as exc:
            raise PayloadDecodeError("Malformed encrypted payload") from exc

        try:
            decryptor = Cipher(algorithms.AES(derive_key(self.password, salt)), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plain = unpadder.update(padded) + unpadder.finalize()
            return json.loads(plain.decode("utf-8"))
        except ValueError as exc:
            # bad key, iv length, padding, utf-8 and json errors are all ValueErrors
            raise PayloadDecodeError("Unable to decrypt payload") from exc

    def encrypt(self, data, iv: bytes, salt: bytes) -> str:
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(json.dumps(data).encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(derive_key(self.password, salt)), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return ":".join(
            (
                base64.b64encode(iv).decode("ascii"),
                salt.hex(),
                base64.b64encode(ciphertext).decode("ascii"),
            )
        )

    def decode(self, headers: Mapping[str, str], raw: bytes):
        if self.is_encrypted(headers):
            return self.decrypt(raw)
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise PayloadDecodeError("Request body is not valid JSON") from exc

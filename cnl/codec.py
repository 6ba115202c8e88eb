"""AES-CBC codec for Click'n'Load ``addcrypted2`` payloads.

The protocol uses the key extracted from ``jk`` as both the AES key and the
IV. That is what every CNL-speaking browser extension and download manager
expects, so it is kept as is.
"""

import base64
import binascii
import logging
import re

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .exceptions import DecryptionError, EncryptionError, NoLinksToEncryptError
from .key_extractor import extract_key
from .models import CnlPackage

BLOCK_SIZE = 16
AES_KEY_SIZES = (16, 24, 32)
# Whitespace runs and the zero/PKCS7 padding bytes left by the sender
WHITESPACE_RUN = re.compile(r'[\s\x00]+')
LINK_SEPARATOR = '\r\n'


class CnlCodec:
    """Stateless encrypt/decrypt of CnlPackage payloads."""

    def get_key(self, jk: str) -> bytes:
        hex_key = extract_key(jk)
        if hex_key is None:
            logging.error("Failed to extract key from JK, decrypted content will be unusable")
            return bytes(BLOCK_SIZE)

        try:
            key = bytes.fromhex(hex_key)
        except ValueError:
            logging.error(f"JK returned an odd-length hex key ({len(hex_key)} digits), using zero key")
            return bytes(BLOCK_SIZE)

        if len(key) not in AES_KEY_SIZES:
            logging.error(f"JK key is {len(key)} bytes, expected 16, 24 or 32; adjusting to 16")
            key = key[:BLOCK_SIZE].ljust(BLOCK_SIZE, b'\x00')
        return key

    @staticmethod
    def _cipher(key: bytes) -> Cipher:
        return Cipher(algorithms.AES(key), modes.CBC(key[:BLOCK_SIZE]))

    @staticmethod
    def _strip_padding(plaintext: bytes) -> bytes:
        # PKCS7 when the sender used it, otherwise the zero padding is left for the whitespace pass
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        try:
            return unpadder.update(plaintext) + unpadder.finalize()
        except ValueError:
            return plaintext

    def decrypt(self, cnl_package: CnlPackage) -> CnlPackage:
        """Return a copy of the package with `decrypted` set to newline-separated links."""
        logging.debug("Decrypting CNL request")
        key = self.get_key(cnl_package.jk)

        try:
            ciphertext = base64.b64decode(cnl_package.crypted or '')
        except (binascii.Error, ValueError) as e:
            raise DecryptionError(f"Crypted payload is not valid base64: {e}") from e

        if not ciphertext or len(ciphertext) % BLOCK_SIZE:
            raise DecryptionError(f"Crypted payload length {len(ciphertext)} is not a multiple of {BLOCK_SIZE}")

        decryptor = self._cipher(key).decryptor()
        plaintext = self._strip_padding(decryptor.update(ciphertext) + decryptor.finalize())

        try:
            text = plaintext.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted payload is not valid UTF-8, the JK key is probably wrong") from e

        decrypted = WHITESPACE_RUN.sub('\n', text)
        return cnl_package.evolve(decrypted=decrypted)

    def encrypt_links(self, links, jk: str) -> str:
        links = list(links)
        if not links:
            logging.error("No links to encrypt")
            raise NoLinksToEncryptError()

        key = self.get_key(jk)
        plaintext = LINK_SEPARATOR.join(links).encode('utf-8')

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext) + padder.finalize()
        try:
            encryptor = self._cipher(key).encryptor()
            ciphertext = encryptor.update(padded) + encryptor.finalize()
        except ValueError as e:
            raise EncryptionError(f"Failed to encrypt links: {e}") from e
        return base64.b64encode(ciphertext).decode('ascii')

    def encrypt(self, cnl_package: CnlPackage) -> CnlPackage:
        """Return a copy of the package whose `crypted` holds every processed link, CRLF-joined."""
        logging.debug("Encrypting CNL response")
        if cnl_package.files is None or not cnl_package.files.results:
            logging.error(f"No links to encrypt for package '{cnl_package.package}'")
            raise NoLinksToEncryptError()

        crypted = self.encrypt_links((link.processed for link in cnl_package.files.results), cnl_package.jk)
        return cnl_package.evolve(crypted=crypted)

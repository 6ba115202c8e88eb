from .codec import CnlCodec
from .key_extractor import extract_key
from .models import CnlPackage, ProcessedLink, ProcessingResult, ProcessingStats, utc_timestamp
from .exceptions import (
    CnlError,
    DecryptionError,
    EncryptionError,
    NoLinksToEncryptError,
    SubmissionError
)

__all__ = [
    'CnlCodec',
    'extract_key',
    'CnlPackage',
    'ProcessedLink',
    'ProcessingResult',
    'ProcessingStats',
    'utc_timestamp',
    'CnlError',
    'DecryptionError',
    'EncryptionError',
    'NoLinksToEncryptError',
    'SubmissionError'
]

class CnlError(Exception):
    """Base exception class for Click'n'Load errors"""
    pass

class DecryptionError(CnlError):
    """Exception raised when a crypted payload cannot be decrypted or decoded"""
    pass

class EncryptionError(CnlError):
    """Exception raised when processed links cannot be encrypted"""
    pass

class NoLinksToEncryptError(EncryptionError):
    """Exception raised when a package has no processed links to encrypt"""
    def __init__(self, message="No links to encrypt"):
        super().__init__(message)

class SubmissionError(CnlError):
    """Exception raised when the download manager rejects or cannot receive a package"""
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code

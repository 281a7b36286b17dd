from __future__ import annotations


class EcoEarnError(Exception):
    """Base class for errors surfaced to dashboard operators."""

    message = "Unexpected error"
    status_code = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


# --- QR payloads
class MalformedToken(EcoEarnError):
    message = "Invalid QR code data"
    status_code = 400

class WrongKind(EcoEarnError):
    message = "Invalid QR code format"
    status_code = 400

class UntrustedToken(EcoEarnError):
    message = "QR code signature is missing or invalid"
    status_code = 400


# --- bin occupancy
class BinNotFound(EcoEarnError):
    message = "Bin not found"
    status_code = 404

    def __init__(self, bin_id: str):
        super().__init__(f"Bin not found: {bin_id}")
        self.bin_id = bin_id

class BinBusy(EcoEarnError):
    message = "This bin is already in use by another user"
    status_code = 409

    def __init__(self, bin_id: str):
        super().__init__()
        self.bin_id = bin_id

class Conflict(EcoEarnError):
    message = "Bin just became busy, please try again"
    status_code = 409

    def __init__(self, bin_id: str):
        super().__init__()
        self.bin_id = bin_id


# --- infrastructure
class CameraUnavailable(EcoEarnError):
    message = "Camera access denied or not available"
    status_code = 503

class StoreWriteFailed(EcoEarnError):
    message = "Failed to save changes"
    status_code = 503


# --- funds
class InvalidAmount(EcoEarnError):
    message = "Please enter a valid positive amount."
    status_code = 400

# ================================
# CUSTOM EXCEPTIONS (core/exceptions.py)
# ================================

class AppException(Exception):
    """Base Exception für Application-spezifische Fehler"""
    
    def __init__(self, detail: str, status_code: int = 400, error_code: str = None):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(detail)

class AuthenticationError(AppException):
    """Authentication-spezifische Fehler"""
    
    def __init__(self, detail: str = "Authentication failed", error_code: str = "AUTH_FAILED"):
        super().__init__(detail, 401, error_code)

class AuthorizationError(AppException):
    """Authorization-spezifische Fehler (Forbidden)"""
    
    def __init__(self, detail: str = "Access denied", error_code: str = "ACCESS_DENIED"):
        super().__init__(detail, 403, error_code)

class NotFoundError(AppException):
    """Referenced entity does not exist"""
    
    def __init__(self, detail: str = "Resource not found", error_code: str = "NOT_FOUND"):
        super().__init__(detail, 404, error_code)

# ================================
# SCHEDULING ERRORS
# ================================

class InvalidDateError(AppException):
    """Reservation date is not strictly in the future"""
    
    def __init__(self, detail: str = "Reservation date must be after today", error_code: str = "INVALID_DATE"):
        super().__init__(detail, 400, error_code)

class InvalidSlotError(AppException):
    """Time slot is empty or not one of the bookable slots"""
    
    def __init__(self, detail: str = "Invalid time slot", error_code: str = "INVALID_SLOT"):
        super().__init__(detail, 400, error_code)

class SlotUnavailableError(AppException):
    """A reservation already occupies the requested property/date/slot"""
    
    def __init__(self, detail: str = "This time slot is already booked", error_code: str = "SLOT_UNAVAILABLE"):
        super().__init__(detail, 409, error_code)

class SlotConflictError(AppException):
    """Another reservation is already accepted for the same property/date/slot"""
    
    def __init__(self, detail: str = "Another reservation is already accepted for this slot", error_code: str = "SLOT_CONFLICT"):
        super().__init__(detail, 409, error_code)

class InvalidTransitionError(AppException):
    """Requested status change is not allowed from the current status"""
    
    def __init__(self, detail: str = "Status change not allowed", error_code: str = "INVALID_TRANSITION"):
        super().__init__(detail, 409, error_code)

class ConcurrencyConflictError(AppException):
    """The row was modified by another request; the operation can be retried"""
    
    retryable = True
    
    def __init__(self, detail: str = "The reservation was modified concurrently, please retry", error_code: str = "CONCURRENT_MODIFICATION"):
        super().__init__(detail, 409, error_code)

# errors.py
from typing import Optional

class BillingError(Exception):
  """Base for every failure the API reports with a reason tag."""

  status_code = 500
  error = "InternalError"
  default_message = "Internal server error"

  def __init__(self, message: Optional[str] = None):
    self.message = message or self.default_message
    super().__init__(self.message)

class Unauthenticated(BillingError):
  status_code = 401
  error = "Unauthenticated"
  default_message = "No token provided"

class InvalidCredentials(BillingError):
  status_code = 401
  error = "InvalidCredentials"
  default_message = "Username or password is incorrect"

class InvalidSession(BillingError):
  status_code = 401
  error = "InvalidSession"
  default_message = "Session expired or invalid"

class InvalidToken(BillingError):
  status_code = 403
  error = "InvalidToken"
  default_message = "Token is not valid"

class TokenExpired(BillingError):
  status_code = 403
  error = "TokenExpired"
  default_message = "Please login again"

class Forbidden(BillingError):
  status_code = 403
  error = "Forbidden"
  default_message = "Admin access required"

class NotFound(BillingError):
  status_code = 404
  error = "NotFound"
  default_message = "Resource not found"

class Conflict(BillingError):
  status_code = 409
  error = "Conflict"
  default_message = "Resource is in use"

class ValidationError(BillingError):
  status_code = 400
  error = "ValidationError"
  default_message = "Validation failed"

class InternalError(BillingError):
  pass

# errors.py


class BillingError(Exception):
  """Base class for errors raised by the billing core."""


class ValidationError(BillingError):
  """Input rejected before anything was written."""


class NotFoundError(BillingError):
  pass


class ConflictError(BillingError):
  """The entity changed between validation and write."""


class PersistenceError(BillingError):
  """The store call failed. The message is the store's own."""


class CorruptScheduleError(BillingError):
  pass

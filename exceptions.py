# exceptions.py
"""
Error kinds raised by the billing engine.

- NotFoundError: a referenced invoice, payment, tenant or user does not exist.
- ValidationFailure: an illegal transition or a rejected input; nothing was changed.
- DependencyFailure: document rendering, email or storage failed. Never rolls
  back a committed financial change.
"""


class BillingError(Exception):
     """Base class for billing engine errors."""


class NotFoundError(BillingError):
     def __init__(self, entity: str, identifier):
          self.entity = entity
          self.identifier = identifier
          super().__init__(f"{entity} with ID {identifier} not found")


class ValidationFailure(BillingError):
     pass


class DependencyFailure(BillingError):
     pass


class ConfigurationError(Exception):
     pass

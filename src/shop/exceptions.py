class ShopError(Exception):
    """Base class for domain failures surfaced to API clients as 4xx."""


class PublicationError(ShopError):
    pass


class CreditError(ShopError):
    pass


class LockerLookupError(ShopError):
    pass


class PromotionRuleError(ShopError):
    pass


class YocoError(ShopError):
    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

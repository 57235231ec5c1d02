# tarot_app/core/exceptions.py


class TarotError(Exception):
    """Base class for every error raised by the reading pipeline."""


class ValidationError(TarotError, ValueError):
    """Bad input, rejected before any side effect."""


class InvalidCategoryError(ValidationError):
    def __init__(self, category):
        self.category = category
        super().__init__(f"Invalid category: {category}")


class InvalidCardError(ValidationError):
    def __init__(self, card_id):
        self.card_id = card_id
        super().__init__(f"Invalid card: {card_id}")


class SelectionExhaustedError(TarotError):
    """The draw loop could not find an unused card within its attempt budget."""


class PersistenceFailure(TarotError):
    """The reading store could not read or write its backing storage."""


class CatalogError(TarotError):
    """The card catalog file is missing or malformed."""


class InterpretationError(TarotError):
    """Base class for failures of the AI interpretation pipeline."""

    status_code = 500


class MissingCredentialsError(InterpretationError):
    status_code = 500


class InvalidRequestError(InterpretationError, ValidationError):
    status_code = 400


class GenerationTimeoutError(InterpretationError):
    status_code = 504


class UpstreamError(InterpretationError):
    status_code = 502

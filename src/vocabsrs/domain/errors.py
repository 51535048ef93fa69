"""Exception hierarchy shared by every layer."""


class VocabSrsError(Exception):
    """Base class for all vocabsrs errors."""


class CardNotFoundError(VocabSrsError):
    def __init__(self, card_id: str):
        super().__init__(f"Card not found: {card_id}")
        self.card_id = card_id


class StoreCorruptedError(VocabSrsError):
    """The backing store exists but cannot be decoded."""

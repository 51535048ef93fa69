"""vocabsrs: spaced-repetition scheduling for vocabulary flashcards."""

from vocabsrs.consts import VERSION

__version__ = VERSION

"""
CEP Race: look up a Brazilian postal code on several providers at once
and keep the first answer, bounded by a hard deadline.
"""

from .coordinator import RaceCoordinator, RacePolicy, race
from .errors import CepRaceError, InvalidInputError, ScopeCancelledError, SourceError
from .models import Address, Failure, Outcome, Success, TimedOut, normalize_cep
from .scope import CancellationScope

__version__ = '1.0.0'

__all__ = ('RaceCoordinator', 'RacePolicy', 'race', 'CancellationScope',
           'Address', 'Success', 'Failure', 'TimedOut', 'Outcome', 'normalize_cep',
           'CepRaceError', 'SourceError', 'InvalidInputError', 'ScopeCancelledError')

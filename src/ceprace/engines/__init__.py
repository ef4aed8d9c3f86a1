from .base import AddressSource, HttpAddressEngine
from .brasilapi_engine import BrasilApiEngine
from .viacep_engine import ViaCepEngine

__all__ = ('AddressSource', 'HttpAddressEngine', 'BrasilApiEngine', 'ViaCepEngine')

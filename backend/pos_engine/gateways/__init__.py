from .memory import InMemoryCardGateway
from .mypos import HttpCardGateway

__all__ = ['InMemoryCardGateway', 'HttpCardGateway']

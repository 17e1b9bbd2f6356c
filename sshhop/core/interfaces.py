"""
Core interfaces for dependency injection
"""
from abc import ABC, abstractmethod
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.session.models import Credential, HostAddress
    from .session import SessionHandle


class SessionFactory(ABC):
    """Opens authenticated transport sessions"""
    
    @abstractmethod
    def open(
        self,
        address: "HostAddress",
        credential: "Credential",
        host_key_address: Optional["HostAddress"] = None,
    ) -> "SessionHandle":
        """
        Open and authenticate one session.

        The server key is checked against `host_key_address` when given,
        otherwise against `address`.

        Raises:
            ConnectError: If the handshake or authentication fails
        """
        pass


class PromptProvider(ABC):
    """User prompt interface"""
    
    @abstractmethod
    def prompt(self, message: str, default: Optional[str] = None, password: bool = False) -> str:
        """Prompt user for input"""
        pass

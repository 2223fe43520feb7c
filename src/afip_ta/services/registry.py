"""Business web-service handles and their registry.

A handle only knows which WSAA service name it needs and how to turn the
current ticket into the Auth block business SOAP calls expect. SOAP
mechanics of the business endpoints live outside this package.
"""

import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Union

from ..utils.exceptions import ValidationError

if TYPE_CHECKING:
    from ..ticket_service import TicketService

logger = logging.getLogger(__name__)


class WebService:
    """Token provider for one business web service.

    Attributes:
        ticket_service: Façade that issues and caches tickets
        service_name: WSAA service identifier (e.g. "wsfe")

    Example:
        >>> billing = ticket_service.web_service("ElectronicBilling")
        >>> auth = await billing.get_auth()
        >>> sorted(auth)
        ['Cuit', 'Sign', 'Token']
    """

    SERVICE_NAME = ""

    def __init__(self, ticket_service: "TicketService", service_name: str = "") -> None:
        service_name = service_name or self.SERVICE_NAME
        if not service_name:
            raise ValidationError(
                f"{type(self).__name__} has no WSAA service name configured"
            )
        self.ticket_service = ticket_service
        self.service_name = service_name

    async def get_auth(self) -> Dict[str, Union[str, int]]:
        """Return the Auth block (Token, Sign, Cuit) for a business request."""
        credentials = await self.ticket_service.get_ticket(self.service_name)
        return {
            "Token": credentials.token,
            "Sign": credentials.sign,
            "Cuit": int(self.ticket_service.cuit),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(service_name={self.service_name!r})"


class ElectronicBilling(WebService):
    """Electronic invoicing (WSFEv1)."""

    SERVICE_NAME = "wsfe"


class RegisterScopeFour(WebService):
    """Taxpayer registry, scope 4."""

    SERVICE_NAME = "ws_sr_padron_a4"


class RegisterScopeFive(WebService):
    """Taxpayer registry, scope 5."""

    SERVICE_NAME = "ws_sr_padron_a5"


class RegisterScopeTen(WebService):
    """Taxpayer registry, scope 10."""

    SERVICE_NAME = "ws_sr_padron_a10"


class RegisterInscriptionProof(WebService):
    """Registration certificate (constancia de inscripción)."""

    SERVICE_NAME = "ws_sr_constancia_inscripcion"


WebServiceFactory = Callable[["TicketService"], WebService]


class WebServiceRegistry:
    """Explicit mapping from handle name to constructor.

    Example:
        >>> registry = WebServiceRegistry()
        >>> registry.register("ElectronicBilling", ElectronicBilling)
        >>> registry.create("ElectronicBilling", ticket_service).service_name
        'wsfe'
    """

    def __init__(self) -> None:
        self._factories: Dict[str, WebServiceFactory] = {}

    def register(self, name: str, factory: WebServiceFactory) -> None:
        if not name:
            raise ValidationError("Web service name must not be empty")
        self._factories[name] = factory
        logger.debug(f"Registered web service {name}")

    def create(self, name: str, ticket_service: "TicketService") -> WebService:
        """Instantiate the handle registered under ``name``.

        Raises:
            ValidationError: If no handle is registered under that name
        """
        try:
            factory = self._factories[name]
        except KeyError:
            raise ValidationError(
                f"Unknown web service: {name}. "
                f"Must be one of: {', '.join(self.names())}"
            ) from None
        return factory(ticket_service)

    def names(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories


def default_registry() -> WebServiceRegistry:
    """Registry with the built-in business web services."""
    registry = WebServiceRegistry()
    for handle in (
        ElectronicBilling,
        RegisterScopeFour,
        RegisterScopeFive,
        RegisterScopeTen,
        RegisterInscriptionProof,
    ):
        registry.register(handle.__name__, handle)
    return registry

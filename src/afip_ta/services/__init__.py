"""Business web-service handles."""

from afip_ta.services.registry import (
    ElectronicBilling,
    RegisterInscriptionProof,
    RegisterScopeFive,
    RegisterScopeFour,
    RegisterScopeTen,
    WebService,
    WebServiceRegistry,
    default_registry,
)

__all__ = [
    "ElectronicBilling",
    "RegisterInscriptionProof",
    "RegisterScopeFive",
    "RegisterScopeFour",
    "RegisterScopeTen",
    "WebService",
    "WebServiceRegistry",
    "default_registry",
]

"""FastAPI dependencies for service access.

Services are built once in the application lifespan and stored on
app.state; routers receive them through these dependencies so tests can
swap in their own container.
"""

from fastapi import Depends, Request

from .bootstrap import Services
from .documents.vault import DocumentVault
from .users.service import IdentityDirectory
from .verifications.service import VerificationLifecycleManager


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_manager(services: Services = Depends(get_services)) -> VerificationLifecycleManager:
    return services.manager


def get_vault(services: Services = Depends(get_services)) -> DocumentVault:
    return services.vault


def get_directory(services: Services = Depends(get_services)) -> IdentityDirectory:
    return services.directory

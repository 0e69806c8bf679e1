"""
Service dependencies.
"""

from typing import Annotated

from fastapi import Depends, Request

from clubaccess.core.uow import UnitOfWorkFactory
from clubaccess.services.access_requests import AccessRequestLedger
from clubaccess.services.accounts import AccountProvisioningService
from clubaccess.services.approvals import ApprovalWorkflow
from clubaccess.services.rbac import RBACService
from .database import get_uow_factory


def get_account_service(
    request: Request,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> AccountProvisioningService:
    return AccountProvisioningService(
        uow_factory,
        avatar_cleaner=request.app.state.avatar_cleaner,
    )


def get_access_request_ledger(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> AccessRequestLedger:
    return AccessRequestLedger(uow_factory)


def get_approval_workflow(
    ledger: AccessRequestLedger = Depends(get_access_request_ledger),
) -> ApprovalWorkflow:
    return ApprovalWorkflow(ledger.uow_factory, ledger=ledger)


def get_rbac_service(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> RBACService:
    return RBACService(uow_factory)


Accounts = Annotated[AccountProvisioningService, Depends(get_account_service)]
AccessRequests = Annotated[AccessRequestLedger, Depends(get_access_request_ledger)]
Approvals = Annotated[ApprovalWorkflow, Depends(get_approval_workflow)]
RBAC = Annotated[RBACService, Depends(get_rbac_service)]

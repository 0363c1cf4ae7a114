from fastapi import Request

from dao_backend.governance.context import GovernanceContext


def get_governance(request: Request) -> GovernanceContext:
    """Return the governance context built at application start."""
    return request.app.state.governance


def ok(data) -> dict:
    return {"success": True, "data": data}

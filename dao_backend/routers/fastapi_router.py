from fastapi import APIRouter

from .routes_dao import router as dao_router
from .routes_member import router as member_router
from .routes_membership import router as membership_router
from .routes_messages import router as messages_router
from .routes_proposal import router as proposal_router
from .routes_quest import participant_router as quest_participant_router
from .routes_quest import router as quest_router
from .routes_vote import router as vote_router

API_PREFIX = "/api/v1"

router = APIRouter(prefix=API_PREFIX)
router.include_router(dao_router)
router.include_router(member_router)
router.include_router(membership_router)
router.include_router(proposal_router)
router.include_router(vote_router)
router.include_router(quest_router)
router.include_router(quest_participant_router)
router.include_router(messages_router)

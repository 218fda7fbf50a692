"""Attack chains state routes."""

from apps.base.context import RequestContext
from apps.base.exceptions import BadRequestException
from apps.base.models import BaseDocument
from apps.handlers.routes import RouterOptions, add_routes

from .models import AttackChain

ATTACK_CHAINS_PATH = "/attackChainsState"
ATTACK_CHAINS_COLLECTION = "attack_chains"


async def validate_attack_chain_id(
    ctx: RequestContext, docs: list[BaseDocument]
) -> list[BaseDocument]:
    for doc in docs:
        if not getattr(doc, "attack_chain_id", None):
            raise BadRequestException("Attack Chain must contain AttackChainID")
    return docs


router = add_routes(
    RouterOptions(
        path=ATTACK_CHAINS_PATH,
        db_collection=ATTACK_CHAINS_COLLECTION,
        model=AttackChain,
        serve_get_names_list=False,
        validate_post_unique_name=False,
        validate_post_mandatory_name=True,
        post_validators=[validate_attack_chain_id],
        serve_post_v2_list=True,
    )
)

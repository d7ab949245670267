"""Query plans: compile index query templates and execute them against resources."""
from .builder import PlanBuilder
from .errors import (
    IllegalStateError,
    MissingKeysError,
    PlanSyntaxError,
    QueryError,
    SearchDecodeError,
    SearchError,
)
from .keys import KvPair, extract_keys
from .plan import CompositePlan, Op, Plan, TemplatePlan
from .plans import DEFAULT_PLAN_CONFIG, build_plan, load_plans, load_plans_file
from .search import Match, SearchClient

"""Deterministic fallbacks used whenever the backend is unavailable or its output is unusable.

A request is matched to one bucket by keywords, checked in priority order:
authentication, API, database, generic. Every bucket is non-empty and satisfies
the same schema as backend output.
"""

from enum import Enum

from planwise.domain.entities.plan import PlanAction, PlanItem


class FallbackBucket(str, Enum):
    AUTH = "auth"
    API = "api"
    DATABASE = "database"
    GENERIC = "generic"


# Matched as plain substrings of the lowercased request
_BUCKET_KEYWORDS: tuple[tuple[FallbackBucket, tuple[str, ...]], ...] = (
    (FallbackBucket.AUTH, ("auth",)),
    (FallbackBucket.API, ("api", "endpoint")),
    (FallbackBucket.DATABASE, ("database", "db")),
)


def match_bucket(request: str) -> FallbackBucket:
    """Pick the fallback bucket for a request."""
    text = request.lower()
    for bucket, keywords in _BUCKET_KEYWORDS:
        if any(k in text for k in keywords):
            return bucket
    return FallbackBucket.GENERIC


CLARIFICATION_FALLBACKS: dict[FallbackBucket, tuple[str, ...]] = {
    FallbackBucket.AUTH: (
        "Which authentication service would you like to use (Auth0, Firebase, or build custom)?",
        "Do you need social login options like Google or GitHub?",
        "Should this work with your existing user database?",
    ),
    FallbackBucket.API: (
        "Do you prefer a REST API or GraphQL for this feature?",
        "What database should this connect to?",
        "Do you need authentication/authorization on these endpoints?",
    ),
    FallbackBucket.DATABASE: (
        "Which database system are you using (PostgreSQL, MongoDB, MySQL)?",
        "Do you need migration scripts for existing data?",
        "What ORM or database client do you prefer (Prisma, TypeORM, etc.)?",
    ),
    FallbackBucket.GENERIC: (
        "What technology stack should this use?",
        "Do you need this to work with existing code or systems?",
        "Are there any specific requirements or constraints?",
    ),
}


def _items(*rows: tuple[str, PlanAction, str]) -> tuple[PlanItem, ...]:
    return tuple(PlanItem(file=f, action=a, description=d) for f, a, d in rows)


PLAN_FALLBACKS: dict[FallbackBucket, tuple[PlanItem, ...]] = {
    FallbackBucket.AUTH: _items(
        ("src/types/auth.ts", PlanAction.NEW, "Define authentication types and user interfaces"),
        ("src/lib/auth.ts", PlanAction.NEW, "Create Auth0 integration service with login/logout methods"),
        ("src/components/LoginForm.tsx", PlanAction.NEW, "Create login form component with Auth0 integration"),
        (
            "src/components/ProtectedRoute.tsx",
            PlanAction.NEW,
            "Create route protection component for authenticated pages",
        ),
        ("src/App.tsx", PlanAction.MODIFY, "Add Auth0 provider and protected routing configuration"),
        ("src/utils/localAuth.ts", PlanAction.REMOVE, "Remove old local authentication utilities"),
    ),
    FallbackBucket.API: _items(
        ("src/types/api.ts", PlanAction.NEW, "Define request and response types for the new endpoints"),
        ("src/api/routes.ts", PlanAction.NEW, "Create route handlers for the requested endpoints"),
        ("src/lib/apiClient.ts", PlanAction.NEW, "Create a typed client for calling the new endpoints"),
        ("src/App.tsx", PlanAction.MODIFY, "Wire the API client into the application"),
    ),
    FallbackBucket.DATABASE: _items(
        ("src/db/schema.ts", PlanAction.NEW, "Define the database schema for the new data"),
        ("src/db/migrations/001_initial.sql", PlanAction.NEW, "Create the migration for the new tables"),
        ("src/lib/db.ts", PlanAction.NEW, "Create the database client and connection setup"),
        ("src/App.tsx", PlanAction.MODIFY, "Initialize the database connection on startup"),
    ),
    FallbackBucket.GENERIC: _items(
        ("src/components/NewFeature.tsx", PlanAction.NEW, "Create main component for the requested feature"),
        ("src/types/feature.ts", PlanAction.NEW, "Define TypeScript types for the new feature"),
        ("src/App.tsx", PlanAction.MODIFY, "Integrate new feature into main application"),
    ),
}


def fallback_clarifications(request: str) -> list[str]:
    return list(CLARIFICATION_FALLBACKS[match_bucket(request)])


def fallback_plan(request: str) -> list[PlanItem]:
    return list(PLAN_FALLBACKS[match_bucket(request)])

"""Resolve an inbound verification token to the account that owns it.

Links pass through mail clients and URL encoders that mangle a handful of
characters, so matching runs in tiers and the first tier with a hit wins:

1. ``exact``: the stored token equals the input.
2. ``containment``: one of the two is a substring of the other (truncation).
3. ``fuzzy``: characters in :data:`FRAGILE_CHARACTERS` are optional and may
   stand in for one another; everything else must match literally, ignoring
   case.

Each tier is tried with the raw input and its percent-decoded form. More than
one account in the winning tier raises :class:`AmbiguousToken`.
"""

from __future__ import annotations

from typing import Iterable
from urllib.parse import unquote

from flask import current_app

from models.user import User
from utils.clock import utcnow
from utils.errors import AmbiguousToken

from .store import store_errors
from .tokens import token_digest, token_preview

EXACT = "exact"
CONTAINMENT = "containment"
FUZZY = "fuzzy"
CONSUMED = "consumed"
TIERS = (EXACT, CONTAINMENT, FUZZY)

# "+" decodes to a space in query strings, "%" and "=" come from
# percent-encoding and base64 padding, "/" from base64.
FRAGILE_CHARACTERS = frozenset("+/%= ")
SUBSTITUTIONS = {char: FRAGILE_CHARACTERS for char in FRAGILE_CHARACTERS}

DEFAULT_MIN_PARTIAL_LENGTH = 16
# Issued tokens are 64 characters; percent-encoding at most triples that.
DEFAULT_MAX_INPUT_LENGTH = 256


def input_variants(raw: str) -> list[str]:
    """Return the raw token and its percent-decoded form, without duplicates."""

    variants = [raw]
    decoded = unquote(raw)
    if decoded and decoded != raw:
        variants.append(decoded)
    return variants


def contains_match(stored: str, raw: str) -> bool:
    if not stored or not raw:
        return False
    return raw in stored or stored in raw


def compile_pattern(raw: str) -> tuple[tuple[frozenset, bool], ...]:
    """Translate a token into (allowed characters, optional) slots."""

    slots = []
    for char in raw:
        substitutes = SUBSTITUTIONS.get(char)
        if substitutes is None:
            slots.append((frozenset({char.lower()}), False))
        else:
            slots.append((substitutes, True))
    return tuple(slots)


def fuzzy_match(stored: str, raw: str) -> bool:
    """Search ``stored`` for ``raw`` under the fragile-character rules."""

    slots = compile_pattern(raw)
    if not stored or not any(not optional for _, optional in slots):
        return False

    text = stored.lower()
    # (slot index, text position) pairs already shown not to lead to a match.
    dead: set[tuple[int, int]] = set()
    for start in range(len(text) + 1):
        stack = [(0, start)]
        while stack:
            index, position = stack.pop()
            if index == len(slots):
                return True
            if (index, position) in dead:
                continue
            dead.add((index, position))
            allowed, optional = slots[index]
            if optional:
                stack.append((index + 1, position))
            if position < len(text) and text[position] in allowed:
                stack.append((index + 1, position + 1))
    return False


def tier_for(stored: str | None, raw: str) -> str | None:
    """Return the best tier at which ``raw`` matches ``stored``, if any."""

    if not stored or not raw:
        return None
    if stored == raw:
        return EXACT
    if contains_match(stored, raw):
        return CONTAINMENT
    if fuzzy_match(stored, raw):
        return FUZZY
    return None


def _min_partial_length() -> int:
    return int(
        current_app.config.get("TOKEN_MATCH_MIN_LENGTH", DEFAULT_MIN_PARTIAL_LENGTH)
    )


def _max_input_length() -> int:
    return int(
        current_app.config.get("TOKEN_MATCH_MAX_LENGTH", DEFAULT_MAX_INPUT_LENGTH)
    )


def _single(tier: str, users: Iterable[User]) -> User | None:
    unique = {user.id: user for user in users}
    if len(unique) > 1:
        current_app.logger.warning(
            "Verification token matched %d accounts at tier %s", len(unique), tier
        )
        raise AmbiguousToken()
    if unique:
        current_app.logger.info("Verification token matched at tier %s", tier)
        return next(iter(unique.values()))
    return None


def _accounts_with_tokens() -> list[User]:
    return User.query.filter(User.verification_token.isnot(None)).all()


def find_account_by_token(raw_token: str) -> User | None:
    """Return the account owning ``raw_token`` or None.

    Falls back to the digest of the last consumed token, so a link that was
    already used still resolves to its (now verified) account.

    The containment and fuzzy tiers only run for inputs of at least
    ``TOKEN_MATCH_MIN_LENGTH`` characters (16 by default). Short fragments such
    as ``abc 123`` or ``abc+12`` therefore resolve to nothing here even though
    :func:`tier_for` classifies them; lower the setting to match them. Inputs
    longer than ``TOKEN_MATCH_MAX_LENGTH`` are rejected before any matching.
    """

    raw = (raw_token or "").strip()
    if not raw:
        return None
    if len(raw) > _max_input_length():
        current_app.logger.info(
            "Verification token rejected: %d characters exceeds the limit", len(raw)
        )
        return None
    variants = input_variants(raw)
    current_app.logger.debug("Resolving verification token %s", token_preview(raw))

    with store_errors():
        exact = User.query.filter(User.verification_token.in_(variants)).all()
        found = _single(EXACT, exact)
        if found is not None:
            return found

        if len(raw) >= _min_partial_length():
            candidates = _accounts_with_tokens()
            for tier, predicate in ((CONTAINMENT, contains_match), (FUZZY, fuzzy_match)):
                matches = [
                    user
                    for user in candidates
                    if any(predicate(user.verification_token, value) for value in variants)
                ]
                found = _single(tier, matches)
                if found is not None:
                    return found

        digests = [token_digest(value) for value in variants]
        consumed = User.query.filter(User.consumed_token_digest.in_(digests)).all()
        return _single(CONSUMED, consumed)


def mask_email(email: str | None) -> str:
    if not email or "@" not in email:
        return "unknown"
    return email[:3] + "***" + email[email.index("@"):]


def diagnose(raw_token: str) -> dict:
    """Report how ``raw_token`` relates to every outstanding token."""

    raw = (raw_token or "").strip()
    variants = input_variants(raw) if raw and len(raw) <= _max_input_length() else []
    now = utcnow()

    with store_errors():
        candidates = _accounts_with_tokens()

    counts = {tier: 0 for tier in TIERS}
    potential = []
    for user in candidates:
        stored = user.verification_token
        flags = {
            EXACT: stored in variants,
            CONTAINMENT: any(contains_match(stored, value) for value in variants),
            FUZZY: any(fuzzy_match(stored, value) for value in variants),
        }
        for tier, hit in flags.items():
            if hit:
                counts[tier] += 1
        if not any(flags.values()):
            continue
        potential.append(
            {
                "id": user.id,
                "maskedEmail": mask_email(user.email),
                "tokenLength": len(stored),
                "tokenSnippet": token_preview(stored),
                "bestTier": tier_for(stored, raw) or next(
                    tier for tier in TIERS if flags[tier]
                ),
                "isExactMatch": flags[EXACT],
                "isContainmentMatch": flags[CONTAINMENT],
                "isFuzzyMatch": flags[FUZZY],
                "isVerified": bool(user.is_verified),
                "hasExpires": user.verification_token_expires is not None,
                "isExpired": user.token_expired(now),
            }
        )

    return {
        "inputLength": len(raw),
        "tokensFoundCount": len(candidates),
        "exactMatchCount": counts[EXACT],
        "containmentMatchCount": counts[CONTAINMENT],
        "fuzzyMatchCount": counts[FUZZY],
        "totalPotentialMatches": len(potential),
        "potentialMatches": potential,
    }

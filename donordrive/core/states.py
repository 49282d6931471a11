DONATION_STATES = ["pending", "scheduled", "assigned", "completed", "cancelled"]

DONATION_TYPES = ["clothes", "toys"]

TRANSITIONS = {
    ("pending",   "scheduled"):  {"roles": ["donor"]},
    ("pending",   "cancelled"):  {"roles": ["donor"]},
    ("scheduled", "pending"):    {"roles": ["donor"]},
    ("scheduled", "cancelled"):  {"roles": ["donor"]},

    ("scheduled", "assigned"):   {"roles": ["driver"]},
    ("assigned",  "completed"):  {"roles": ["driver"]},
}


def can_transition(src: str, dst: str, role: str) -> bool:
    rule = TRANSITIONS.get((src, dst))
    if not rule:
        return False
    return role in rule["roles"]


def donor_targets(src: str) -> list[str]:
    return [dst for (s, dst), rule in TRANSITIONS.items() if s == src and "donor" in rule["roles"]]

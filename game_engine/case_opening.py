"""Case opening: draw a rarity tier, then a weighted item within it."""
import math
import re
from dataclasses import dataclass
from fractions import Fraction

from pydantic import BaseModel, ConfigDict

from game_engine.base import BaseGameEngine, outcome_field
from game_engine.models import CaseOpeningBet, CaseOpeningOutcome, Item, Rarity

# Rarest first: the cumulative draw checks tiers in this order
RARITY_ORDER = ("legendary", "epic", "rare", "uncommon", "common")


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


# (name, rarity, base_value, category)
_ITEM_ROWS = [
    ("Bandage", "common", 50, "medical"),
    ("Painkillers", "common", 75, "medical"),
    ("AI-2 Medkit", "common", 100, "medical"),
    ("Splint", "common", 80, "medical"),
    ("Aseptic Bandage", "common", 60, "medical"),
    ("Salewa First Aid Kit", "uncommon", 200, "medical"),
    ("Car First Aid Kit", "uncommon", 180, "medical"),
    ("Esmarch Tourniquet", "uncommon", 150, "medical"),
    ("Hemostatic Drug", "uncommon", 220, "medical"),
    ("Analgin Painkillers", "uncommon", 160, "medical"),
    ("IFAK Personal Tactical First Aid Kit", "rare", 500, "medical"),
    ("Augmentin Antibiotic", "rare", 400, "medical"),
    ("Vaseline Balm", "rare", 450, "medical"),
    ("Golden Star Balm", "rare", 380, "medical"),
    ("Ibuprofen Painkillers", "rare", 420, "medical"),
    ("Grizzly Medical Kit", "epic", 1200, "medical"),
    ("Surv12 Field Surgical Kit", "epic", 1500, "medical"),
    ("CMS Surgical Kit", "epic", 1300, "medical"),
    ("Propital Injector", "epic", 1000, "medical"),
    ("Morphine Injector", "epic", 1100, "medical"),
    ("LEDX Skin Transilluminator", "legendary", 5000, "medical"),
    ("Ophthalmoscope", "legendary", 4500, "medical"),
    ("Defibrillator", "legendary", 6000, "medical"),
    ("Bolts", "common", 20, "valuables"),
    ("Screws", "common", 25, "valuables"),
    ("Matches", "common", 15, "valuables"),
    ("Duct Tape", "common", 40, "valuables"),
    ("Nails", "common", 30, "valuables"),
    ("Gold Chain", "uncommon", 200, "valuables"),
    ("Silver Badge", "uncommon", 150, "valuables"),
    ("Chainlet", "uncommon", 180, "valuables"),
    ("Brass Knuckles", "uncommon", 120, "valuables"),
    ("Cigarettes", "uncommon", 100, "valuables"),
    ("Rolex", "rare", 800, "valuables"),
    ("Prokill Medallion", "rare", 600, "valuables"),
    ("Gold Skull Ring", "rare", 700, "valuables"),
    ("Silver Lion", "rare", 500, "valuables"),
    ("Antique Book", "rare", 450, "valuables"),
    ("Antique Axe", "epic", 1800, "valuables"),
    ("Golden Rooster", "epic", 2000, "valuables"),
    ("Skull Ring", "epic", 1500, "valuables"),
    ("Rare Painting", "epic", 2200, "valuables"),
    ("Antique Vase", "epic", 1600, "valuables"),
    ("Intelligence Folder", "legendary", 10000, "valuables"),
    ("Bitcoin", "legendary", 12000, "valuables"),
    ("Rare Artifact", "legendary", 15000, "valuables"),
]

ITEMS = {
    _slug(name): Item(id=_slug(name), name=name, rarity=rarity,
                      base_value=value, category=category)
    for name, rarity, value, category in _ITEM_ROWS
}


class CaseType(BaseModel):
    """A purchasable case: price, rarity odds and per-rarity pool settings."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: float
    description: str = ""
    rarity_distribution: dict[Rarity, float]
    pool_weights: dict[Rarity, float]       # weight of each item of that rarity
    value_multipliers: dict[Rarity, float]  # applied to base_value on award
    is_active: bool = True


CASE_TYPES = {
    "scav": CaseType(
        id="scav", name="Scav Case", price=500,
        description="Basic case containing common items found by Scavengers.",
        rarity_distribution={"common": 60, "uncommon": 25, "rare": 10, "epic": 4, "legendary": 1},
        pool_weights={"common": 10.0, "uncommon": 5.0, "rare": 2.0, "epic": 0.8, "legendary": 0.2},
        value_multipliers={"common": 1.0, "uncommon": 1.2, "rare": 1.5, "epic": 2.0, "legendary": 3.0},
    ),
    "pmc": CaseType(
        id="pmc", name="PMC Case", price=1500,
        description="Military-grade case with better odds for valuable items.",
        rarity_distribution={"common": 45, "uncommon": 30, "rare": 15, "epic": 8, "legendary": 2},
        pool_weights={"common": 6.0, "uncommon": 8.0, "rare": 5.0, "epic": 2.5, "legendary": 0.5},
        value_multipliers={"common": 1.2, "uncommon": 1.5, "rare": 2.0, "epic": 2.5, "legendary": 4.0},
    ),
    "labs": CaseType(
        id="labs", name="Labs Case", price=5000,
        description="Premium case with the highest chance for legendary items.",
        rarity_distribution={"common": 30, "uncommon": 35, "rare": 20, "epic": 12, "legendary": 3},
        pool_weights={"common": 3.0, "uncommon": 4.0, "rare": 8.0, "epic": 6.0, "legendary": 2.0},
        value_multipliers={"common": 1.5, "uncommon": 2.0, "rare": 3.0, "epic": 4.0, "legendary": 6.0},
    ),
}


@dataclass(frozen=True)
class WeightedItem:
    item: Item
    weight: float
    value_multiplier: float

    @property
    def effective_value(self) -> float:
        return calculate_item_value(self.item, self.value_multiplier)


def calculate_item_value(item: Item, value_multiplier: float) -> float:
    return math.floor(item.base_value * value_multiplier)


def get_case_types() -> list:
    return sorted((c for c in CASE_TYPES.values() if c.is_active), key=lambda c: c.price)


def get_case(case_id):
    """Active case by id, or None."""
    if not isinstance(case_id, str):
        return None
    case = CASE_TYPES.get(case_id)
    return case if case is not None and case.is_active else None


def get_item_pool(case: CaseType) -> list:
    return [
        WeightedItem(item, case.pool_weights[item.rarity], case.value_multipliers[item.rarity])
        for item in ITEMS.values()
    ]


def select_rarity(distribution: dict, rng) -> Rarity:
    total = sum(distribution.values())
    if total <= 0:
        raise ValueError("Invalid rarity distribution")
    target = rng.random() * total
    cumulative = 0.0
    for rarity in RARITY_ORDER[:-1]:
        cumulative += distribution.get(Rarity(rarity), 0)
        if target <= cumulative:
            return Rarity(rarity)
    return Rarity.COMMON


def select_item(pool: list, rarity: Rarity, rng) -> WeightedItem:
    candidates = [w for w in pool if w.item.rarity == rarity]
    if not candidates:
        raise RuntimeError(f"No items found for rarity: {rarity.value}")
    total = sum(w.weight for w in candidates)
    if total <= 0:
        raise RuntimeError("Invalid total weight for item selection")
    target = rng.random() * total
    cumulative = 0.0
    for weighted in candidates:
        cumulative += weighted.weight
        if target <= cumulative:
            return weighted
    return candidates[-1]


class CaseOpeningEngine(BaseGameEngine):
    game_type = "case_opening"
    display_name = "Case Opening"

    def generate_outcome(self, bet, rng) -> CaseOpeningOutcome:
        case = get_case(bet.case_id)
        rarity = select_rarity(case.rarity_distribution, rng)
        won = select_item(get_item_pool(case), rarity, rng)
        return CaseOpeningOutcome(
            case_id=case.id,
            item_won=won.item,
            rarity=rarity,
            value_multiplier=won.value_multiplier,
            currency_awarded=won.effective_value,
        )

    def compute_payout(self, bet, outcome) -> float:
        awarded = outcome_field(outcome, "currency_awarded")
        if awarded is not None:
            return max(0, awarded)
        item = outcome_field(outcome, "item_won")
        if isinstance(item, dict):
            item = Item(**item)
        case = get_case(bet.case_id)
        return calculate_item_value(item, case.value_multipliers[item.rarity])

    def items_by_rarity(self, case_id: str) -> dict:
        case = get_case(case_id)
        if case is None:
            raise ValueError(f"Unknown case: {case_id}")
        grouped = {r: [] for r in RARITY_ORDER}
        for weighted in get_item_pool(case):
            grouped[weighted.item.rarity.value].append({
                "item": weighted.item.model_dump(mode="json"),
                "value": weighted.effective_value,
            })
        return grouped

    def compute_rtp(self, bet=None) -> float:
        """Exact expected award divided by the case price."""
        case = get_case(bet.case_id if bet is not None else "scav")
        pool = get_item_pool(case)
        dist_total = Fraction(str(sum(case.rarity_distribution.values())))
        expected = Fraction(0)
        for rarity, share in case.rarity_distribution.items():
            tier = [w for w in pool if w.item.rarity == rarity]
            tier_weight = sum(Fraction(str(w.weight)) for w in tier)
            tier_ev = sum(Fraction(str(w.weight)) / tier_weight * Fraction(str(w.effective_value))
                          for w in tier)
            expected += Fraction(str(share)) / dist_total * tier_ev
        return float(expected / Fraction(str(case.price)))

    def sample_bet(self, case_id: str = "scav", user_id: str = "simulation", **kw) -> CaseOpeningBet:
        return CaseOpeningBet(user_id=user_id, amount=CASE_TYPES[case_id].price, case_id=case_id)

    def get_metadata(self) -> dict:
        return {
            **super().get_metadata(),
            "cases": [{"id": c.id, "name": c.name, "price": c.price} for c in get_case_types()],
        }

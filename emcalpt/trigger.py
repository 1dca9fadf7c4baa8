from dataclasses import dataclass, field


MIN_BIAS = "MinBias"
JET_HIGH = "EMCJHigh"
JET_LOW = "EMCJLow"
GAMMA_HIGH = "EMCGHigh"
GAMMA_LOW = "EMCGLow"
TRIGGER_TYPES = (JET_HIGH, JET_LOW, GAMMA_HIGH, GAMMA_LOW)

# Every trigger name a component books histograms for, with its title.
TRIGGER_TITLES = {
    MIN_BIAS: "min. bias events",
    JET_HIGH: "jet-triggered events (high threshold)",
    JET_LOW: "jet-triggered events (low threshold)",
    GAMMA_HIGH: "gamma-triggered events (high threshold)",
    GAMMA_LOW: "gamma-triggered events (low threshold)",
    "EMCHighBoth": "jet and gamma triggered events (high threshold)",
    "EMCHighGammaOnly": "exclusively gamma-triggered events (high threshold)",
    "EMCHighJetOnly": "exclusively jet-triggered events (high threshold)",
    "EMCLowBoth": "jet and gamma triggered events (low threshold)",
    "EMCLowGammaOnly": "exclusively gamma-triggered events (low threshold)",
    "EMCLowJetOnly": "exclusively jet-triggered events (low threshold)",
}

METHOD_STRING = "string"
METHOD_PATCHES = "patches"
METHOD_MIXED = "mixed"

MODE_DIRECT = "direct"
MODE_COMBINATORIAL = "combinatorial"


@dataclass(frozen=True)
class TriggerDecision:
    """Trigger bits of one event.

    ``from_string`` holds the trigger types selected from the fired trigger
    classes, ``from_patches`` the ones confirmed by reconstructed trigger
    patches above threshold.
    """

    min_bias: bool = False
    from_string: frozenset[str] = field(default_factory=frozenset)
    from_patches: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        for source in (self.from_string, self.from_patches):
            unknown = set(source) - set(TRIGGER_TYPES)
            if unknown:
                raise ValueError(
                    f"Unknown trigger types {sorted(unknown)}. Known: {', '.join(TRIGGER_TYPES)}."
                )

    def is_min_bias(self) -> bool:
        return self.min_bias

    def is_triggered(self, trigger: str, method: str = METHOD_STRING) -> bool:
        if method == METHOD_STRING:
            return trigger in self.from_string
        if method == METHOD_PATCHES:
            return trigger in self.from_patches
        if method == METHOD_MIXED:
            return trigger in self.from_string and trigger in self.from_patches
        raise ValueError(f"Unsupported trigger method '{method}'.")


def resolve_trigger_names(decision: TriggerDecision | None, method: str = METHOD_STRING, mode: str = MODE_DIRECT) -> list[str]:
    """Names of all trigger categories that selected the event.

    A candidate is filled once per returned name, so overlapping categories
    are counted in each of them.
    """
    if mode not in (MODE_DIRECT, MODE_COMBINATORIAL):
        raise ValueError(f"Unsupported trigger name mode '{mode}'.")
    names: list[str] = []
    if decision is None:
        return names
    if decision.is_min_bias():
        names.append(MIN_BIAS)

    jet_high = decision.is_triggered(JET_HIGH, method)
    jet_low = decision.is_triggered(JET_LOW, method)
    gamma_high = decision.is_triggered(GAMMA_HIGH, method)
    gamma_low = decision.is_triggered(GAMMA_LOW, method)
    combinatorial = mode == MODE_COMBINATORIAL

    # Composite categories pair jet and gamma at the same threshold only.
    for threshold, jet, gamma, fired_jet, fired_gamma in (
        ("High", JET_HIGH, GAMMA_HIGH, jet_high, gamma_high),
        ("Low", JET_LOW, GAMMA_LOW, jet_low, gamma_low),
    ):
        if fired_jet:
            names.append(jet)
        if fired_gamma:
            names.append(gamma)
        if not combinatorial:
            continue
        if fired_jet and fired_gamma:
            names.append(f"EMC{threshold}Both")
        elif fired_jet:
            names.append(f"EMC{threshold}JetOnly")
        elif fired_gamma:
            names.append(f"EMC{threshold}GammaOnly")
    return names

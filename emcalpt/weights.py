import logging
from typing import Any, Callable

from .event_data import MCEvent
from .settings import RuntimeConfig


LOGGER = logging.getLogger("emcalpt.weights")


class WeightHandler:
    """Event weight for pt-hard binned Monte-Carlo productions.

    Either evaluates a model of the event's pt-hard, or uses the cross
    section divided by the number of trials. Events without MC information
    get weight 1.
    """

    def __init__(self, model: Callable[[float], float] | None = None, use_cross_section: bool = False) -> None:
        if model is not None and use_cross_section:
            raise ValueError("Weight model and cross-section weighting are exclusive.")
        self.model = model
        self.use_cross_section = use_cross_section

    def get_event_weight(self, mc_event: MCEvent | None) -> float:
        if mc_event is None:
            return 1.0
        if self.use_cross_section:
            if mc_event.n_trials <= 0:
                LOGGER.warning("MC event without trials, using weight 1")
                return 1.0
            return float(mc_event.cross_section) / float(mc_event.n_trials)
        if self.model is None:
            return 1.0
        return float(self.model(mc_event.pt_hard))

    @classmethod
    def from_runtime_config(cls, runtime_config: RuntimeConfig) -> "WeightHandler | None":
        mode = runtime_config.weights.mode
        if mode == "none":
            return None
        if mode == "xsec":
            return cls(use_cross_section=True)
        return cls(model=_tf1_model(runtime_config.weights.pthard_formula))


def _tf1_model(formula: str) -> Callable[[float], float]:
    import ROOT

    func: Any = ROOT.TF1("emcalptWeightModel", formula, 0.0, 1.0e4)
    if not func.IsValid():
        raise ValueError(f"Invalid pt-hard weight formula '{formula}'.")
    return func.Eval

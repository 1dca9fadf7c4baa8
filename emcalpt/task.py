from dataclasses import replace
import logging

from .binning import BinningComponent
from .components_clusters import ClusterAnalysisComponent
from .components_common import AnalysisComponent, ComponentContext, HistogramSink
from .components_tracks import RecTrackAnalysisComponent
from .cuts import CutValueRange, KineCuts, track_selection_from_bits
from .event_data import EventData
from .settings import RuntimeConfig
from .weights import WeightHandler


LOGGER = logging.getLogger("emcalpt.task")


class AnalysisTask:
    """Owns the histogram container and runs its components on every event."""

    def __init__(self, name: str, histos: HistogramSink, weight_handler: WeightHandler | None = None) -> None:
        self.name = name
        self.histos = histos
        self.weight_handler = weight_handler
        self.components: list[AnalysisComponent] = []
        self.n_events = 0
        self._initialized = False

    def add_component(self, component: AnalysisComponent) -> None:
        if self._initialized:
            raise RuntimeError(f"Task '{self.name}': cannot add component '{component.name}' after initialisation.")
        self.components.append(component)

    def user_create_outputs(self) -> None:
        if self._initialized:
            raise RuntimeError(f"Task '{self.name}' already initialised.")
        for component in self.components:
            LOGGER.debug("Creating histograms for component %s", component.name)
            component.create_histos()
        self._initialized = True

    def user_exec(self, data: EventData) -> None:
        if not self._initialized:
            raise RuntimeError(f"Task '{self.name}' used before user_create_outputs().")
        if self.weight_handler and data.mc_event is not None:
            data = replace(data, weight=self.weight_handler.get_event_weight(data.mc_event))
        for component in self.components:
            component.process(data)
        self.n_events += 1


def build_kine_cuts(runtime_config: RuntimeConfig, cut_eta: bool = False) -> KineCuts:
    eta_min, eta_max = runtime_config.kine["eta"]
    if cut_eta:
        eta_min = max(eta_min, -runtime_config.eta_cut)
        eta_max = min(eta_max, runtime_config.eta_cut)
    return KineCuts(
        pt=CutValueRange(*runtime_config.kine["pt"]),
        eta=CutValueRange(eta_min, eta_max),
        phi=CutValueRange(*runtime_config.kine["phi"]),
    )


def build_task(
    runtime_config: RuntimeConfig,
    name: str = "PtEMCalTriggerTask",
    is_mc: bool | None = None,
    cut_eta: bool | None = None,
    histos: HistogramSink | None = None,
) -> AnalysisTask:
    cfg = runtime_config
    is_mc = cfg.is_mc if is_mc is None else is_mc
    cut_eta = cfg.cut_eta if cut_eta is None else cut_eta
    if histos is None:
        from .histograms import HistogramContainer

        histos = HistogramContainer(name)

    weight_handler = WeightHandler.from_runtime_config(cfg) if is_mc else None
    task = AnalysisTask(name, histos, weight_handler)
    context = ComponentContext(
        histos=histos,
        binning=BinningComponent.from_runtime_config(cfg),
        kine_cuts=build_kine_cuts(cfg, cut_eta),
    )

    if cfg.tracks.enabled:
        request_mc_true = cfg.tracks.request_mc_true
        if request_mc_true and not is_mc:
            LOGGER.warning("MC-true tracks requested on data, disabling the requirement")
            request_mc_true = False
        task.add_component(
            RecTrackAnalysisComponent(
                "tracksRec",
                context,
                track_selection=track_selection_from_bits(cfg.tracks.filter_bits),
                trigger_method=cfg.tracks.trigger_method,
                name_mode=cfg.tracks.name_mode,
                swap_eta=cfg.tracks.swap_eta,
                request_mc_true=request_mc_true,
            )
        )
    if cfg.clusters.enabled:
        task.add_component(
            ClusterAnalysisComponent(
                "clusters",
                context,
                energy_range=CutValueRange(*cfg.clusters.energy_range),
                trigger_method=cfg.clusters.trigger_method,
                name_mode=cfg.clusters.name_mode,
            )
        )
    if not task.components:
        raise ValueError("No analysis component enabled: set tracks.enabled or clusters.enabled.")
    LOGGER.info(
        "Configured task %s is_mc=%s cut_eta=%s components=%s",
        name,
        is_mc,
        cut_eta,
        ",".join(c.name for c in task.components),
    )
    return task

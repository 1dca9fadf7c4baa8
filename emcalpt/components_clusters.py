import logging

from .components_common import ComponentContext, kinematic_axes
from .cuts import CutValueRange
from .event_data import Cluster, EventData
from .trigger import METHOD_STRING, MODE_DIRECT, TRIGGER_TITLES, resolve_trigger_names


LOGGER = logging.getLogger("emcalpt.components")


class ClusterAnalysisComponent:
    """EMCal cluster spectra, for uncalibrated and calibrated clusters, per trigger class."""

    def __init__(
        self,
        name: str,
        context: ComponentContext,
        energy_range: CutValueRange | None = None,
        trigger_method: str = METHOD_STRING,
        name_mode: str = MODE_DIRECT,
    ) -> None:
        self.name = name
        self.context = context
        self.energy_range = energy_range or CutValueRange()
        self.trigger_method = trigger_method
        self.name_mode = name_mode

    def create_histos(self) -> None:
        histos = self.context.histos
        cluster_axes = kinematic_axes(self.context.binning, first="energy")
        for trigger, title in TRIGGER_TITLES.items():
            histos.create_thnsparse(
                f"hClusterCalibHist{trigger}", f"Calib. cluster-based histogram for {title}", cluster_axes, "s"
            )
            histos.create_thnsparse(
                f"hClusterUncalibHist{trigger}", f"Uncalib. cluster-based histogram for {title}", cluster_axes, "s"
            )

    def process(self, data: EventData) -> None:
        trigger_names = resolve_trigger_names(data.trigger_decision, self.trigger_method, self.name_mode)
        if not trigger_names:
            return
        in_mb = data.trigger_decision.is_min_bias()
        LOGGER.debug("Clusters: uncalibrated=%d calibrated=%d", len(data.clusters), len(data.calibrated_clusters))

        for prefix, clusters in (("hClusterUncalibHist", data.clusters), ("hClusterCalibHist", data.calibrated_clusters)):
            for cluster in clusters:
                if not cluster.is_emcal:
                    continue
                if not self.energy_range.is_in_range(cluster.energy):
                    continue
                for trigger in trigger_names:
                    self.fill_histogram(f"{prefix}{trigger}", cluster, data, in_mb)

    def fill_histogram(self, histname: str, cluster: Cluster, data: EventData, in_mb: bool) -> None:
        energy, eta, phi = cluster.momentum(data.rec_event.primary_vertex)
        values = (energy, eta, phi, data.rec_event.vertex_z, 1.0 if in_mb else 0.0)
        self.context.histos.fill_thnsparse(histname, values)

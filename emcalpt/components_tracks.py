import logging

from .binning import define_axis
from .components_common import ComponentContext, kinematic_axes, min_bias_flag
from .cuts import SelectionChain, TrackSelection
from .event_data import EventData, MCEvent, MCParticle, Track
from .trigger import METHOD_STRING, MODE_DIRECT, TRIGGER_TITLES, resolve_trigger_names


LOGGER = logging.getLogger("emcalpt.components")

CORRELATION_HIST = "hTrackPtCorrelation"


class RecTrackAnalysisComponent:
    """Track spectra at reconstruction and MC level for each trigger class.

    For every trigger name the component books
      - hTrackHist<name>: reconstructed kinematics
      - hTrackInAcceptanceHist<name>: same, for tracks matched to an EMCal cluster
      - hMCTrackHist<name>: kinematics of the associated MC particle
      - hMCTrackInAcceptanceHist<name>: same, for tracks matched to a cluster
    and one trigger-independent correlation matrix between generated and
    reconstructed pt.
    """

    def __init__(
        self,
        name: str,
        context: ComponentContext,
        track_selection: TrackSelection | None = None,
        trigger_method: str = METHOD_STRING,
        name_mode: str = MODE_DIRECT,
        swap_eta: bool = False,
        request_mc_true: bool = False,
    ) -> None:
        self.name = name
        self.context = context
        self.selection = SelectionChain(context.kine_cuts, track_selection)
        self.trigger_method = trigger_method
        self.name_mode = name_mode
        self.swap_eta = swap_eta
        self.request_mc_true = request_mc_true

    def create_histos(self) -> None:
        histos = self.context.histos
        binning = self.context.binning
        track_axes = kinematic_axes(binning)
        for trigger, title in TRIGGER_TITLES.items():
            histos.create_thnsparse(f"hTrackHist{trigger}", f"Track-based data for {title}", track_axes, "s")
            histos.create_thnsparse(
                f"hTrackInAcceptanceHist{trigger}",
                f"Track-based data for {title} for tracks matched to EMCal clusters",
                track_axes,
                "s",
            )
            histos.create_thnsparse(f"hMCTrackHist{trigger}", f"Track-based data for {title} with MC kinematics", track_axes, "s")
            histos.create_thnsparse(
                f"hMCTrackInAcceptanceHist{trigger}",
                f"Track-based data for {title} with MC kinematics for tracks matched to EMCal clusters",
                track_axes,
                "s",
            )

        ptbinning = binning.get_binning("pt")
        corr_axes = [
            define_axis("ptgen", ptbinning),
            define_axis("ptrec", ptbinning),
            define_axis("eta", binning.get_binning("eta")),
            define_axis("phi", binning.get_binning("phi")),
        ]
        histos.create_thnsparse(CORRELATION_HIST, "Correlation matrix for track pt", corr_axes)

    def process(self, data: EventData) -> None:
        if self.request_mc_true and data.mc_event is None:
            return

        trigger_names = resolve_trigger_names(data.trigger_decision, self.trigger_method, self.name_mode)
        if data.matched_tracks is None:
            LOGGER.error("No container for matched tracks")
            return
        LOGGER.debug("Number of matched tracks: %d", len(data.matched_tracks))

        weight = data.weight
        for track in data.matched_tracks:
            if not self.selection.accept(track):
                continue

            assoc_mc = self.find_mc_true_particle(track, data.mc_event) if data.mc_event is not None else None
            if self.request_mc_true and assoc_mc is None:
                continue
            if assoc_mc is not None:
                self.fill_correlation(assoc_mc, track, weight)

            has_cluster = self._has_matched_cluster(track, data)
            for trigger in trigger_names:
                self.fill_histogram(f"hTrackHist{trigger}", track, None, data, False, weight)
                if has_cluster:
                    self.fill_histogram(f"hTrackInAcceptanceHist{trigger}", track, None, data, False, weight)
                if assoc_mc is not None:
                    self.fill_histogram(f"hMCTrackHist{trigger}", track, assoc_mc, data, True, weight)
                    if has_cluster:
                        self.fill_histogram(f"hMCTrackInAcceptanceHist{trigger}", track, assoc_mc, data, True, weight)

    @staticmethod
    def find_mc_true_particle(track: Track, mc_event: MCEvent) -> MCParticle | None:
        """Associated MC particle if the track is a true physical primary."""
        particle = mc_event.get_track(track.label)
        if particle is None or not particle.physical_primary:
            return None
        return particle

    @staticmethod
    def _has_matched_cluster(track: Track, data: EventData) -> bool:
        index = track.unwrap().cluster_index
        return index >= 0 and data.cluster_at(index) is not None

    def fill_histogram(
        self,
        histname: str,
        track: Track,
        assoc_mc: MCParticle | None,
        data: EventData,
        use_mc_kine: bool,
        weight: float = 1.0,
    ) -> None:
        if use_mc_kine and assoc_mc is None:
            return
        source = assoc_mc if use_mc_kine else track
        values = (
            abs(source.pt),
            (-1.0 if self.swap_eta else 1.0) * source.eta,
            source.phi,
            data.rec_event.vertex_z,
            min_bias_flag(data),
        )
        self.context.histos.fill_thnsparse(histname, values, weight)

    def fill_correlation(self, gen_particle: MCParticle, rec_particle: Track, weight: float = 1.0) -> None:
        values = (abs(gen_particle.pt), abs(rec_particle.pt), rec_particle.eta, rec_particle.phi)
        self.context.histos.fill_thnsparse(CORRELATION_HIST, values, weight)

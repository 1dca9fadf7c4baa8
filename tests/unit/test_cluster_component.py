import math
import unittest

from emcalpt import settings as s
from emcalpt.binning import BinningComponent
from emcalpt.components_clusters import ClusterAnalysisComponent
from emcalpt.components_common import ComponentContext
from emcalpt.cuts import CutValueRange
from emcalpt.event_data import Cluster, EventData, RecEvent
from emcalpt.trigger import TRIGGER_TITLES, TriggerDecision

from recording import RecordingHistograms


class TestClusterComponent(unittest.TestCase):
    def setUp(self) -> None:
        self.histos = RecordingHistograms()
        binning = BinningComponent.from_runtime_config(s.current_runtime_config())
        self.component = ClusterAnalysisComponent(
            "clusters",
            ComponentContext(self.histos, binning),
            energy_range=CutValueRange(1.0, 50.0),
        )
        self.component.create_histos()

    def test_books_calibrated_and_uncalibrated_per_trigger(self) -> None:
        self.assertEqual(len(self.histos.axes), 2 * len(TRIGGER_TITLES))
        axes = self.histos.axes["hClusterCalibHistEMCGHigh"]
        self.assertEqual([a.name for a in axes], ["energy", "eta", "phi", "zvertex", "mbtrigger"])

    def test_fills_clusters_in_energy_range(self) -> None:
        data = EventData(
            rec_event=RecEvent(vertex_z=0.0),
            trigger_decision=TriggerDecision(min_bias=True, from_string=frozenset({"EMCGHigh"})),
            clusters=(Cluster(2.0, (0.0, 450.0, 0.0)), Cluster(0.5, (0.0, 450.0, 0.0)), Cluster(3.0, (0.0, 450.0, 0.0), is_emcal=False)),
            calibrated_clusters=(Cluster(2.5, (0.0, 450.0, 0.0)),),
            weight=2.0,
        )
        self.component.process(data)

        self.assertEqual(
            sorted(self.histos.filled_names()),
            sorted([
                "hClusterUncalibHistMinBias",
                "hClusterUncalibHistEMCGHigh",
                "hClusterCalibHistMinBias",
                "hClusterCalibHistEMCGHigh",
            ]),
        )
        values, weight = self.histos.fills_for("hClusterUncalibHistMinBias")[0]
        self.assertEqual(weight, 1.0)
        self.assertEqual(values[0], 2.0)
        self.assertAlmostEqual(values[1], 0.0)
        self.assertAlmostEqual(values[2], math.pi / 2)
        self.assertEqual(values[4], 1.0)

    def test_eta_relative_to_vertex(self) -> None:
        energy, eta, phi = Cluster(1.0, (-450.0, 0.0, 55.0)).momentum((0.0, 0.0, 5.0))
        self.assertAlmostEqual(eta, math.asinh(50.0 / 450.0))
        self.assertAlmostEqual(phi, math.pi)


if __name__ == "__main__":
    unittest.main()

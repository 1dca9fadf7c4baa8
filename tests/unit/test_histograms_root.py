import os
import tempfile
import unittest

from emcalpt.binning import define_axis


def _import_root_or_none():
    try:
        import ROOT  # type: ignore

        return ROOT
    except Exception:
        return None


class TestHistogramContainer(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.ROOT = _import_root_or_none()

    def setUp(self) -> None:
        if self.ROOT is None:
            self.skipTest("ROOT not available")
        from emcalpt.histograms import HistogramContainer

        self.axes = [
            define_axis("pt", nbins=10, low=0.0, high=10.0),
            define_axis("eta", nbins=4, low=-0.8, high=0.8),
            define_axis("mbtrigger", nbins=2, low=-0.5, high=1.5),
        ]
        self.container = HistogramContainer("test")
        self.container.create_thnsparse("hTest", "test", self.axes, "s")

    def test_axes_and_fill(self) -> None:
        hist = self.container.get("hTest")
        self.assertEqual(hist.GetNdimensions(), 3)
        self.assertEqual(hist.GetAxis(0).GetName(), "pt")
        self.assertEqual(hist.GetAxis(2).GetNbins(), 2)

        self.container.fill_thnsparse("hTest", (5.5, 0.1, 1.0), 2.0)
        self.container.fill_thnsparse("hTest", (5.6, 0.1, 1.0))
        self.assertAlmostEqual(self.container.bin_content("hTest", (5.2, 0.2, 1.0)), 3.0)
        self.assertEqual(self.container.bin_content("hTest", (1.0, 0.2, 0.0)), 0.0)
        self.assertEqual(self.container.entries("hTest"), 2.0)

    def test_dimension_mismatch_is_fatal(self) -> None:
        with self.assertRaisesRegex(RuntimeError, "Dimension mismatch"):
            self.container.fill_thnsparse("hTest", (5.5, 0.1))

    def test_unknown_histogram(self) -> None:
        with self.assertRaises(KeyError):
            self.container.fill_thnsparse("hMissing", (5.5, 0.1, 1.0))

    def test_duplicate_histogram(self) -> None:
        with self.assertRaisesRegex(ValueError, "already exists"):
            self.container.create_thnsparse("hTest", "again", self.axes)

    def test_merge_adds_bin_contents(self) -> None:
        from emcalpt.histograms import HistogramContainer

        other = HistogramContainer("worker")
        other.create_thnsparse("hTest", "test", self.axes, "s")
        self.container.fill_thnsparse("hTest", (5.5, 0.1, 1.0))
        other.fill_thnsparse("hTest", (5.5, 0.1, 1.0), 4.0)
        other.fill_thnsparse("hTest", (2.5, -0.5, 0.0))
        self.container.merge(other)

        self.assertAlmostEqual(self.container.bin_content("hTest", (5.5, 0.1, 1.0)), 5.0)
        self.assertAlmostEqual(self.container.bin_content("hTest", (2.5, -0.5, 0.0)), 1.0)

    def test_write_list_to_folder(self) -> None:
        from emcalpt.root_io import write_list

        self.container.fill_thnsparse("hTest", (5.5, 0.1, 1.0))
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "AnalysisResults.root")
            write_list(self.container.to_list(), f"{path}:PtEMCalTriggerTask", "ListHist", "RECREATE")
            root_file = self.ROOT.TFile(path)
            hist_list = root_file.Get("PtEMCalTriggerTask/ListHist")
            self.assertTrue(hist_list)
            self.assertTrue(hist_list.FindObject("hTest"))
            root_file.Close()


if __name__ == "__main__":
    unittest.main()

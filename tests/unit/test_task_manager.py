import json
import os
import random
import tempfile
import unittest

from emcalpt import settings as s
from emcalpt.event_source import JsonLinesEventSource, event_from_dict
from emcalpt.manager import AnalysisManager, add_task_trigger_pt
from emcalpt.task import build_task

from recording import RecordingHistograms


EVENTS = [
    {
        "vertex_z": 0.1,
        "trigger": {"min_bias": True, "string": ["EMCJHigh"]},
        "tracks": [{"pt": 5.0, "eta": 0.2, "phi": 1.0}],
    },
    {
        "vertex_z": -3.0,
        "trigger": {"min_bias": False, "string": ["EMCGLow"], "patches": ["EMCGLow"]},
        "tracks": [
            {"pt": 2.0, "eta": -0.5, "phi": 4.0, "cluster": 0},
            {"pt": 0.05, "eta": 0.0, "phi": 1.0},
        ],
        "clusters": [{"energy": 2.0, "position": [0.0, 450.0, 10.0]}],
    },
    {
        "vertex_z": 2.0,
        "trigger": {"min_bias": True},
        "tracks": [{"pt": 1.5, "eta": 1.2, "phi": 2.0}, {"pt": 7.0, "eta": 0.7, "phi": 6.0}],
    },
]


class CountingWeights:
    def __init__(self, weight: float) -> None:
        self.weight = weight
        self.calls = 0

    def get_event_weight(self, mc_event) -> float:
        self.calls += 1
        return self.weight


class TestAnalysisTask(unittest.TestCase):
    def _run(self, events, cfg=None) -> RecordingHistograms:
        histos = RecordingHistograms()
        task = build_task(s.current_runtime_config(cfg), histos=histos)
        task.user_create_outputs()
        for raw in events:
            task.user_exec(event_from_dict(raw))
        return histos

    def test_repeated_runs_are_identical(self) -> None:
        self.assertEqual(self._run(EVENTS).fills, self._run(EVENTS).fills)

    def test_event_order_does_not_change_contents(self) -> None:
        shuffled = list(EVENTS)
        random.Random(7).shuffle(shuffled)
        self.assertEqual(self._run(EVENTS).contents(), self._run(list(reversed(EVENTS))).contents())
        self.assertEqual(self._run(EVENTS).contents(), self._run(shuffled).contents())

    def test_cut_eta_restricts_acceptance(self) -> None:
        loose = self._run(EVENTS[2:])
        tight = self._run(EVENTS[2:], {"run": {"cut_eta": True}, "kine": {"eta_cut": 0.8}})
        self.assertEqual(len(loose.fills), 2)
        self.assertEqual(len(tight.fills), 1)

    def test_weight_queried_once_per_mc_event(self) -> None:
        histos = RecordingHistograms()
        runtime = s.current_runtime_config({"clusters": {"enabled": True}})
        task = build_task(runtime, histos=histos, is_mc=False)
        weights = CountingWeights(2.5)
        task.weight_handler = weights
        task.user_create_outputs()
        raw = dict(EVENTS[1], mc={"particles": [{"pt": 2.0, "eta": -0.5, "phi": 4.0}]})
        task.user_exec(event_from_dict(raw))
        task.user_exec(event_from_dict(EVENTS[0]))

        self.assertEqual(weights.calls, 1)
        self.assertEqual(task.n_events, 2)
        weighted = [w for name, _, w in histos.fills if name.startswith("hTrack") and name.endswith("EMCGLow")]
        self.assertTrue(weighted)
        self.assertTrue(all(w == 2.5 for w in weighted))
        cluster_fills = [w for name, _, w in histos.fills if name.startswith("hCluster")]
        self.assertTrue(cluster_fills)
        self.assertTrue(all(w == 1.0 for w in cluster_fills))
        self.assertTrue(all(w == 1.0 for name, _, w in histos.fills if name.endswith("EMCJHigh")))

    def test_exec_before_create_outputs_fails(self) -> None:
        task = build_task(s.current_runtime_config(), histos=RecordingHistograms())
        with self.assertRaisesRegex(RuntimeError, "before user_create_outputs"):
            task.user_exec(event_from_dict(EVENTS[0]))

    def test_mc_requirement_dropped_on_data(self) -> None:
        with self.assertLogs("emcalpt.task", level="WARNING"):
            task = build_task(
                s.current_runtime_config({"tracks": {"request_mc_true": True}}),
                histos=RecordingHistograms(),
                is_mc=False,
            )
        self.assertFalse(task.components[0].request_mc_true)

    def test_no_component_enabled(self) -> None:
        with self.assertRaisesRegex(ValueError, "No analysis component enabled"):
            build_task(s.current_runtime_config({"tracks": {"enabled": False}}), histos=RecordingHistograms())


class TestManagerWiring(unittest.TestCase):
    def test_requires_manager_and_input_handler(self) -> None:
        runtime = s.current_runtime_config()
        with self.assertRaisesRegex(RuntimeError, "no analysis manager"):
            add_task_trigger_pt(None, runtime, histos=RecordingHistograms())
        with self.assertRaisesRegex(RuntimeError, "requires an input event handler"):
            add_task_trigger_pt(AnalysisManager(), runtime, histos=RecordingHistograms())

    def test_connects_output_container_and_runs_events(self) -> None:
        runtime = s.current_runtime_config()
        manager = AnalysisManager(common_file_name="out.root")
        manager.set_input_handler([event_from_dict(raw) for raw in EVENTS])
        histos = RecordingHistograms()
        task = add_task_trigger_pt(manager, runtime, histos=histos)

        container = manager.output_of(task)
        self.assertEqual(container.name, "ListHist")
        self.assertEqual(container.file_spec, "out.root:PtEMCalTriggerTask")

        manager.init_analysis()
        self.assertEqual(manager.run_event_loop(max_events=2), 2)
        self.assertEqual(task.n_events, 2)
        self.assertIn("hTrackHistEMCJHigh", histos.filled_names())

    def test_mc_handler_sets_mc_mode(self) -> None:
        manager = AnalysisManager()
        manager.set_input_handler([])
        manager.set_mc_truth_handler(True)
        runtime = s.current_runtime_config({"weights": {"mode": "xsec"}, "tracks": {"request_mc_true": True}})
        task = add_task_trigger_pt(manager, runtime, histos=RecordingHistograms())
        self.assertIsNotNone(task.weight_handler)
        self.assertTrue(task.components[0].request_mc_true)

    def test_logs_input_data_type(self) -> None:
        manager = AnalysisManager()
        manager.set_input_handler(JsonLinesEventSource("events.jsonl"))
        with self.assertLogs("emcalpt.manager", level="INFO") as logs:
            add_task_trigger_pt(manager, s.current_runtime_config(), histos=RecordingHistograms())
        self.assertIn("input data type JSON", logs.output[0])


class TestJsonLinesEventSource(unittest.TestCase):
    def test_reads_events(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "events.jsonl")
            with open(path, "w", encoding="utf-8") as f:
                f.write("# comment\n\n")
                for raw in EVENTS:
                    f.write(json.dumps(raw) + "\n")
                f.write(json.dumps({"trigger": {"min_bias": True}, "mc": {"particles": [{"pt": 1.0, "eta": 0.0, "phi": 0.0, "primary": False}]}}) + "\n")
            events = list(JsonLinesEventSource(path))

        self.assertEqual(len(events), 4)
        self.assertEqual(events[0].rec_event.vertex_z, 0.1)
        self.assertEqual(events[1].trigger_decision.from_patches, frozenset({"EMCGLow"}))
        self.assertEqual(events[1].matched_tracks[0].cluster_index, 0)
        self.assertIsNone(events[3].matched_tracks)
        self.assertFalse(events[3].mc_event.particles[0].physical_primary)

    def test_invalid_line(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "events.jsonl")
            with open(path, "w", encoding="utf-8") as f:
                f.write("{not json}\n")
            with self.assertRaisesRegex(ValueError, "invalid event record"):
                list(JsonLinesEventSource(path))

    def test_wrapped_track(self) -> None:
        data = event_from_dict({"tracks": [{"pt": 1.0, "eta": 0.0, "phi": 0.0, "inner": {"pt": 1.0, "eta": 0.0, "phi": 0.0, "cluster": 3}}]})
        self.assertEqual(data.matched_tracks[0].unwrap().cluster_index, 3)

    def test_unknown_trigger_types_are_dropped(self) -> None:
        data = event_from_dict({"trigger": {"min_bias": True, "string": ["EMCJHigh", "CINT7"], "patches": ["DJ1"]}})
        self.assertEqual(data.trigger_decision.from_string, frozenset({"EMCJHigh"}))
        self.assertEqual(data.trigger_decision.from_patches, frozenset())
        self.assertTrue(data.trigger_decision.is_min_bias())


if __name__ == "__main__":
    unittest.main()

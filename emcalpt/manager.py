from dataclasses import dataclass
import logging
from typing import Iterable

from .components_common import HistogramSink
from .event_data import EventData
from .settings import RuntimeConfig
from .task import AnalysisTask, build_task


LOGGER = logging.getLogger("emcalpt.manager")


@dataclass(frozen=True)
class OutputContainer:
    name: str
    file_spec: str


class AnalysisManager:
    """Feeds events from the input handler to the registered tasks and
    writes each task's histograms to its connected output container."""

    def __init__(self, name: str = "EMCalTriggerPt", common_file_name: str = "AnalysisResults.root") -> None:
        self.name = name
        self.common_file_name = common_file_name
        self.tasks: list[AnalysisTask] = []
        self._input_handler: Iterable[EventData] | None = None
        self._mc_truth = False
        self._containers: dict[str, OutputContainer] = {}
        self._outputs: dict[str, OutputContainer] = {}

    def set_input_handler(self, handler: Iterable[EventData]) -> None:
        self._input_handler = handler

    def get_input_handler(self) -> Iterable[EventData] | None:
        return self._input_handler

    def set_mc_truth_handler(self, enabled: bool) -> None:
        self._mc_truth = bool(enabled)

    def get_mc_truth_handler(self) -> bool:
        return self._mc_truth

    def add_task(self, task: AnalysisTask) -> None:
        if any(t.name == task.name for t in self.tasks):
            raise ValueError(f"Task '{task.name}' already registered.")
        self.tasks.append(task)

    def create_container(self, name: str, file_spec: str) -> OutputContainer:
        if name in self._containers:
            raise ValueError(f"Output container '{name}' already exists.")
        container = OutputContainer(name, file_spec)
        self._containers[name] = container
        return container

    def connect_output(self, task: AnalysisTask, container: OutputContainer) -> None:
        if task not in self.tasks:
            raise ValueError(f"Task '{task.name}' is not registered with manager '{self.name}'.")
        self._outputs[task.name] = container

    def output_of(self, task: AnalysisTask) -> OutputContainer | None:
        return self._outputs.get(task.name)

    def init_analysis(self) -> None:
        if self._input_handler is None:
            raise RuntimeError("No input event handler set.")
        if not self.tasks:
            raise RuntimeError("No task registered.")
        for task in self.tasks:
            task.user_create_outputs()

    def run_event_loop(self, max_events: int = -1) -> int:
        n_events = 0
        for data in self._input_handler or ():
            if 0 <= max_events <= n_events:
                break
            for task in self.tasks:
                task.user_exec(data)
            n_events += 1
        LOGGER.info("Processed %d events", n_events)
        return n_events

    def terminate(self) -> list[str]:
        from .root_io import split_file_spec, write_list

        written: list[str] = []
        recreated: set[str] = set()
        for task in self.tasks:
            container = self._outputs.get(task.name)
            if container is None:
                LOGGER.warning("Task %s has no output container, histograms not written", task.name)
                continue
            filename, _ = split_file_spec(container.file_spec)
            mode = "UPDATE" if filename in recreated else "RECREATE"
            recreated.add(filename)
            written.append(write_list(task.histos.to_list(), container.file_spec, container.name, mode))
            LOGGER.info("Wrote output %s of task %s to %s", container.name, task.name, container.file_spec)
        return written

    def start_analysis(self, max_events: int = -1) -> int:
        self.init_analysis()
        n_events = self.run_event_loop(max_events)
        self.terminate()
        return n_events


def add_task_trigger_pt(
    manager: AnalysisManager | None,
    runtime_config: RuntimeConfig,
    cut_eta: bool | None = None,
    name: str = "PtEMCalTriggerTask",
    histos: HistogramSink | None = None,
) -> AnalysisTask:
    """Create the track/cluster task and wire it into the manager."""
    if manager is None:
        raise RuntimeError("AddTaskTriggerPt: no analysis manager found.")
    if manager.get_input_handler() is None:
        raise RuntimeError("AddTaskTriggerPt: this task requires an input event handler.")
    data_type = getattr(manager.get_input_handler(), "data_type", "unknown")
    LOGGER.info("AddTaskTriggerPt: input data type %s", data_type)

    is_mc = manager.get_mc_truth_handler()
    task = build_task(runtime_config, name=name, is_mc=is_mc, cut_eta=cut_eta, histos=histos)
    manager.add_task(task)

    coutput = manager.create_container("ListHist", f"{manager.common_file_name}:{runtime_config.paths.output_folder}")
    manager.connect_output(task, coutput)
    return task

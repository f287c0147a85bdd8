import os
import sys
import time
from pathlib import Path

import pytest

# Ensure windsim is importable without installation
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from windsim.common.config import SimConfig
from windsim.sim.wind_sim import WindSimulation


def pytest_addoption(parser):
    parser.addoption(
        "--run-slow",
        action="store_true",
        help="Run long solver scenarios on larger grids",
    )
    parser.addoption(
        "--windsim-debug",
        action="store_true",
        help="Enable windsim debug logging during tests",
    )


def pytest_configure(config):
    if config.getoption("--windsim-debug"):
        from windsim.common import debug

        debug.enable(True)
    config.addinivalue_line(
        "markers",
        "slow: long-running solver scenarios",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-slow"):
        return
    skip = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip)


_RUN_LOG = "pytest_run_times.log"


def pytest_sessionstart(session):
    session._start_time = time.time()


def pytest_sessionfinish(session, exitstatus):
    duration = time.time() - session._start_time
    log_file = Path(session.config.rootpath) / _RUN_LOG
    history = int(os.environ.get("PYTEST_RUN_TIME_HISTORY", "50"))
    line = f"{time.strftime('%Y-%m-%d %H:%M:%S')} {duration:.2f}"

    if log_file.exists():
        lines = log_file.read_text().splitlines()
    else:
        lines = []

    lines.append(line)
    lines = lines[-history:]
    log_file.write_text("\n".join(lines) + "\n")

    reporter = session.config.pluginmanager.get_plugin("terminalreporter")
    if reporter and lines:
        reporter.write_line("Recent pytest run times:")
        for entry in lines[-5:]:
            reporter.write_line(f"  {entry}")


# ---------------------------------------------------------------------------
# Simulation fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def small_sim():
    """6x6x6 cell simulation, running, with default switches."""
    return WindSimulation(6, 6, 6, 1.0, config=SimConfig(run_enabled=True))


@pytest.fixture
def still_config():
    """Config with every transport effect switched off."""
    return SimConfig(
        run_enabled=True,
        density_diffusion_enabled=False,
        density_advection_enabled=False,
        velocity_diffusion_enabled=False,
        velocity_advection_enabled=False,
    )


@pytest.fixture(params=[(4, 4, 4), (5, 3, 4), (3, 6, 2)])
def dims(request):
    """A selection of interior grid shapes, cubic and not."""
    return request.param

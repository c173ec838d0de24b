import os
import subprocess
import sys
from pathlib import Path

import pytest


EXAMPLES_DIR = Path(__file__).resolve().parents[1] / "examples"
REPO_ROOT = EXAMPLES_DIR.parent
SRC_DIR = REPO_ROOT / "src"

# Text each example prints once its estimate is done.
EXPECTED_OUTPUT = {
    "01_gaussian.py": ("gaussian:", "log-likelihood", "mu = "),
    "02_annealing_path.py": ("log-likelihood", "evaluations:", "accepted:"),
    "03_imputation.py": ("missing cells:", "log-likelihood"),
}


def _run_example(path: Path) -> subprocess.CompletedProcess:
    env = dict(os.environ, MPLBACKEND="Agg")
    env["PYTHONPATH"] = os.pathsep.join(
        p for p in (str(SRC_DIR), env.get("PYTHONPATH", "")) if p
    )
    return subprocess.run(
        [sys.executable, str(path)],
        cwd=str(REPO_ROOT),
        env=env,
        capture_output=True,
        text=True,
        check=False,
        timeout=600,
    )


def test_every_example_has_expected_output():
    names = sorted(p.name for p in EXAMPLES_DIR.glob("[0-9][0-9]_*.py"))
    assert names == sorted(EXPECTED_OUTPUT)


@pytest.mark.examples
@pytest.mark.parametrize("name", sorted(EXPECTED_OUTPUT))
def test_example_reports_estimate(name: str) -> None:
    path = EXAMPLES_DIR / name
    if "matplotlib" in path.read_text(encoding="utf-8"):
        pytest.importorskip("matplotlib")

    result = _run_example(path)
    assert result.returncode == 0, (
        f"{name} exited with {result.returncode}\n"
        f"stdout:\n{result.stdout}\nstderr:\n{result.stderr}"
    )
    for fragment in EXPECTED_OUTPUT[name]:
        assert fragment in result.stdout, f"{name}: {fragment!r} missing from output"

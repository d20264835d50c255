#!/usr/bin/env python3
"""Direct launcher for the Budget Tracker.

This script launches Streamlit on budget_tracker/dashboard.py with the
project root on the import path.
"""

import os
import subprocess
import sys
from pathlib import Path

# Get the project root and the Streamlit entry point
project_root = Path(__file__).parent.resolve()
dashboard_path = project_root / "budget_tracker" / "dashboard.py"

if __name__ == "__main__":
    # Make ``import budget_tracker`` work inside the Streamlit process
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(project_root), env.get("PYTHONPATH")]))
    subprocess.run([
        sys.executable, "-m", "streamlit", "run",
        str(dashboard_path),
    ], env=env)

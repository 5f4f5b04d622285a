import os
import subprocess
import sys

import pytest

BACKEND = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@pytest.mark.parametrize("first", [
    "exam_portal.models.grade_model",
    "exam_portal.models.user_model",
    "exam_portal.models.submission_model",
])
def test_models_import_in_any_order(first):
    # fresh interpreter, so no module loaded by conftest hides the import order
    code = f"import {first}; import exam_portal.app"
    env = dict(os.environ, PYTHONPATH=BACKEND)
    result = subprocess.run([sys.executable, "-c", code], env=env, capture_output=True, text=True)
    assert result.returncode == 0, result.stderr

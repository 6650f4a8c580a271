import os
import pathlib
import sys
import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import tools`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))


MULTIPLY_PROGRAM = {
    "functions": [
        {
            "current_witness_index": 2,
            "private_parameters": [0, 1],
            "public_parameters": [],
            "return_values": [2],
            "opcodes": [{"kind": "mul", "lhs": 0, "rhs": 1, "out": 2}],
        }
    ]
}

# main(x, y) = square(x) + y, with square as a called function
CALL_PROGRAM = {
    "functions": [
        {
            "current_witness_index": 3,
            "private_parameters": [0, 1],
            "public_parameters": [],
            "return_values": [3],
            "opcodes": [
                {"kind": "call", "function": 1, "inputs": [0], "outputs": [2]},
                {"kind": "add", "lhs": 2, "rhs": 1, "out": 3},
            ],
        },
        {
            "current_witness_index": 1,
            "private_parameters": [0],
            "public_parameters": [],
            "return_values": [1],
            "opcodes": [{"kind": "mul", "lhs": 0, "rhs": 0, "out": 1}],
        },
    ]
}

MULTIPLY_WITNESS = {"0": "0x3", "1": "0x4"}


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Each test starts from default configuration with no ZKBRIDGE_* overrides."""
    for name in list(os.environ):
        if name.startswith("ZKBRIDGE_"):
            monkeypatch.delenv(name, raising=False)

    from tools.zkbridge.config import get_config_manager
    get_config_manager().reset()
    yield
    get_config_manager().reset()


@pytest.fixture
def multiply_bytecode():
    from tools.zkbridge.reference import encode_program
    return encode_program(MULTIPLY_PROGRAM)


@pytest.fixture
def call_bytecode():
    from tools.zkbridge.reference import encode_program
    return encode_program(CALL_PROGRAM)


@pytest.fixture
def bridge():
    from tools.zkbridge.boundary import ProverBridge
    return ProverBridge()

"""Pytest configuration and fixtures for recipex tests."""
from pathlib import Path

import pytest

PUBLISHER_JUSTFILE = """\
export RUST_BACKTRACE := "full"
export RUST_LOG := "info"
export ETH_WALLET_PRIVATE_KEY := "<insert your private key here>"
export BONSAI_API_KEY := "<insert your bonsai api key>"
export BONSAI_API_URL := "https://api.bonsai.xyz/"

chain-id := "31337"

contract := `echo 0xC0FFEE`

build:
    cargo build --release

contract:
    echo {{contract}}

contract-call:
    cast call --rpc-url http://localhost:8545 {{contract}} 'get()(uint256)'

deploy:
    forge script --rpc-url http://localhost:8545 --broadcast script/Deploy.s.sol

publish value='12345678' prover='local':
    cargo run --bin publisher -- --chain-id={{chain-id}} --rpc-url=http://localhost:8545 --contract={{contract}} --input={{value}} --prover={{prover}}

publish-jwt value='123456789' prover='local':
    cargo run --bin publisher -- --chain-id={{chain-id}} --rpc-url=http://localhost:8545 --contract={{contract}} --input={{value}} --method=jwt --prover={{prover}}

publish-jwt-cuda value='123456789' prover='local':
    cargo run --bin publisher --features=cuda -- --chain-id={{chain-id}} --rpc-url=http://localhost:8545 --contract={{contract}} --input={{value}} --method=jwt --prover={{prover}}

publish-jwt-metal value='123456789' prover='local':
    cargo run --bin publisher --features=metal -- --chain-id={{chain-id}} --rpc-url=http://localhost:8545 --contract={{contract}} --input={{value}} --method=jwt --prover={{prover}}
"""


@pytest.fixture
def write_justfile(tmp_path: Path):
    """Write recipe text to tmp_path/justfile and return its path."""

    def _write(text: str, name: str = "justfile") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def publisher_justfile(write_justfile) -> Path:
    return write_justfile(PUBLISHER_JUSTFILE)


def pytest_sessionfinish(session, exitstatus):
    """Check that coverage data was collected if --cov was requested.

    This prevents silent "no data collected" scenarios that produce 0% coverage
    without failing the test run.
    """
    cov_enabled = any("--cov" in str(arg) for arg in session.config.args)

    if not cov_enabled:
        return

    cwd = Path.cwd()
    coverage_files = list(cwd.glob(".coverage*"))

    if not coverage_files:
        pytest.exit(
            "Coverage was enabled but no data was collected. "
            "Check that tests import from 'recipex' (the package) not 'src/recipex' (filesystem path).",
            returncode=1
        )

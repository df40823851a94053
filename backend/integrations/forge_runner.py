"""
Forge Runner
Runs the pre-written Foundry fork simulation and captures its console output.

The Solidity test is opaque to us: the route is handed over through
environment variables and the result comes back as text on stdout.
"""

import asyncio
import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from config.settings import (
    FORGE_BINARY,
    FOUNDRY_PATH,
    MAINNET_RPC_URL,
    SIMULATION_TEST_NAME,
    SIMULATION_TIMEOUT,
)
from infrastructure.api_metrics import APICallTimer
from integrations.exceptions import SimulationError, SimulationTimeout

logger = logging.getLogger("ForgeRunner")

# params key -> env var read by the simulation test
PARAM_ENV_VARS = {
    "router": "SIM_ROUTER_ADDRESS",
    "calldata": "SIM_CALLDATA",
    "value": "SIM_VALUE",
    "from_address": "SIM_FROM_ADDRESS",
    "from_token": "SIM_FROM_TOKEN",
    "to_token": "SIM_TO_TOKEN",
    "amount": "SIM_AMOUNT",
}


@dataclass
class ForgeOutput:
    stdout: str
    stderr: str
    exit_code: int
    command: str


class ForgeRunner:
    """
    Usage:
        runner = ForgeRunner()
        output = await runner.run_simulation({"router": "0x...", "calldata": "0x..."})

    Raises SimulationTimeout when the process outlives `timeout` and
    SimulationError when it cannot start or exits non-zero.
    """

    def __init__(
        self,
        foundry_path: str = FOUNDRY_PATH,
        timeout: float = SIMULATION_TIMEOUT,
        forge_binary: str = FORGE_BINARY,
        test_name: str = SIMULATION_TEST_NAME,
        rpc_url: str = MAINNET_RPC_URL,
    ):
        self.foundry_path = foundry_path
        self.timeout = timeout
        self.forge_binary = forge_binary
        self.test_name = test_name
        self.rpc_url = rpc_url

    @property
    def args(self) -> List[str]:
        return [self.forge_binary, "test", "--match-test", self.test_name, "-vv"]

    @property
    def command(self) -> str:
        return " ".join(self.args)

    def build_env(self, params: Dict[str, Any]) -> Dict[str, str]:
        env = dict(os.environ)
        if self.rpc_url:
            env["MAINNET_RPC_URL"] = self.rpc_url
        for key, var in PARAM_ENV_VARS.items():
            value = params.get(key)
            if value is not None:
                env[var] = str(value)
        return env

    def _run(self, env: Dict[str, str]) -> ForgeOutput:
        try:
            result = subprocess.run(
                self.args,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=self.foundry_path,
                env=env,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise SimulationTimeout(self.timeout) from e
        except OSError as e:
            # forge missing or foundry dir absent
            raise SimulationError(f"Could not start forge: {e}") from e

        if result.returncode != 0:
            raise SimulationError(
                f"forge exited with code {result.returncode}",
                exit_code=result.returncode,
                stderr=result.stderr,
            )

        return ForgeOutput(
            stdout=result.stdout,
            stderr=result.stderr,
            exit_code=result.returncode,
            command=self.command,
        )

    async def run_simulation(self, params: Optional[Dict[str, Any]] = None) -> ForgeOutput:
        env = self.build_env(params or {})
        logger.info(f"[Forge] Running `{self.command}` in {self.foundry_path}")

        loop = asyncio.get_running_loop()
        with APICallTimer("forge", self.test_name) as timer:
            output = await loop.run_in_executor(None, self._run, env)
            timer.status_code = output.exit_code

        return output

#!/usr/bin/env python3
"""
Bootstrap Demo - bootseq

Runs a three-step bootstrap: write a config file, launch a "master" process,
then launch a "worker" process. Pass --fail-master to make the master exit
with 137 and watch the worker never start.

Run: python examples/bootstrap_demo.py [--fail-master]
"""

import sys
import tempfile
from pathlib import Path

from bootseq.config.loader import ConfigLoader
from bootseq.logging.config import configure_logging_from_config
from bootseq.provider import ProviderService
from bootseq.service import ActionService


def main() -> int:
    fail_master = "--fail-master" in sys.argv[1:]
    conf_dir = Path(tempfile.mkdtemp(prefix="bootseq-"))

    config = ConfigLoader.create(conf_dir).merge_config({"process": {"kill_grace_seconds": 2.0}})
    configure_logging_from_config(config)

    provider = ProviderService("demo")
    provider.init(config)

    provider.add_service(ActionService(
        "write-config",
        lambda: (conf_dir / "site.yaml").write_text("master.port: 16000\n"),
    ))
    master_code = "import sys; print('master up'); sys.exit(137)" if fail_master \
        else "print('master up')"
    provider.queue_command("launch-master", {"ROLE": "master"}, [sys.executable, "-c", master_code])
    provider.queue_command("launch-worker", {"ROLE": "worker"},
                           [sys.executable, "-c", "import os; print('worker', os.environ['ROLE'])"])

    provider.start()
    provider.wait_for_terminal()

    exit_code = provider.get_exit_code()
    print(f"bootstrap finished: state={provider.state.value} exit_code={exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())

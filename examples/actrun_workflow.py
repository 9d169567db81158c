# actrun_workflow.py
# The docs workflow from docs.yml, written with the python DSL.
from __future__ import annotations

from actrun import action, deploy, job, pull_request, push, sh, toolchain, wf


def workflow():
    return wf(
        job(
            "docs",
            action("Checkout", "actions/checkout@v2"),
            sh(
                "Install dependencies",
                "sudo apt-get update\n"
                "sudo apt-get -y install libssl-dev jq binaryen",
            ),
            sh("Build docs", "./scripts/setup.sh\n./scripts/build.sh", cwd="editor"),
            runs_on="ubuntu-20.04",
            toolchain=toolchain("rust", "nightly", override=True, profile="minimal"),
            deploy=deploy("editor/docs", "docs"),
        ),
        name="docs",
        on=[pull_request(), push("master")],
    )

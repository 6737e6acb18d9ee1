# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
autobuild build pipeline.

Subsystems:
  - orchestrator: the per-platform build loop
  - workspace: per-platform scratch trees under <run>/build/<triplet>/
  - heartbeat: keeps CI watchdogs from killing a quiet build
  - tarballs: the top-level entry point that picks build vs. reconstruction
  - exceptions: the pipeline's error taxonomy
"""

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Source acquisition for autobuild.

  - models: the declared source shapes and VerifiedSource
  - download: httpx downloads with SHA256 verification
  - resolver: declared sources → verified local files
"""

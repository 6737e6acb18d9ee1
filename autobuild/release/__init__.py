# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release-side tooling for autobuild.

  - github: list and download release assets
  - reconstruct: rebuild a product hash map from a release without building
  - verification: check a products directory against its build manifest
"""

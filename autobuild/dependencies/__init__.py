# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Upstream dependencies: loading their descriptors and shadow-installing them.
"""

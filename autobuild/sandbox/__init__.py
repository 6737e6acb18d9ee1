# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Build sandboxes.

  - interfaces: the Sandbox protocol the orchestrator depends on
  - local: the default bash-subprocess implementation
"""

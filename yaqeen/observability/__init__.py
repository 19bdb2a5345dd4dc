# SPDX-License-Identifier: Apache-2.0

"""
Tracing and logging setup for the Yaqeen API.
"""

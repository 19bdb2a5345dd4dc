# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Yaqeen API - donation brokerage between donors and verified families.
"""

__version__ = "1.0.0"

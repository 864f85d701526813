"""
Environment Update Advisor

Risk-assessed, interactive package updates for conda environments that mix
conda and pip packages.
"""

__version__ = "0.1.0"
__author__ = "Imranur Rahman"

from .cli import main

__all__ = ["main"]

"""This module includes tools for logging training progress.
"""
from .logger import Logger
from .recorder import Recorder

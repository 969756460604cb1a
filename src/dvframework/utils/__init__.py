"""
Contains some useful utility functions to be used in rule predicates.
"""
from .frame_functions import current_mode
from .query_object import get_value, optional_field, required_field

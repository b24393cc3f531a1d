"""Record loading utilities.

Reads activity, event and actor dumps exported by the host application (CSV
or JSON) and validates them into the Pydantic input models.
"""

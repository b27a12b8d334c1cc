"""Points economy core for a household task/reward app.

Parents define tasks and rewards, children earn points by completing tasks and
spend them on rewards, and more than one parent can be linked to a child.
"""
__version__ = "0.3.0"

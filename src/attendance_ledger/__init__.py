"""Attendance & leave accounting engine.

Layers mirror each feature package: model -> repository (Protocol) ->
mysql adapter -> service -> controller.
"""

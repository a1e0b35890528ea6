"""Modules, their actions, drivers and the module service."""
"""Branch attendance package.

Organized by feature modules (attendance, breaks, corrections, ...) with
Protocol repositories, MySQL adapters, plain service classes and a thin
Flask JSON layer on top.
"""

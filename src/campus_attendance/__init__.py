"""Campus Attendance package.

This package is organized by feature modules (accounts, students, classes,
sessions, reports, ...) with a thin Flask controller layer on top of
service/repository layers.
"""

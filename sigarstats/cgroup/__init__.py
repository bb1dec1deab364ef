"""Metrics and tunable limits of Linux control groups."""
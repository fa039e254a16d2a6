# src/bayesqc/__init__.py

"""
Streaming Bayesian quality-control simulator:

- stats: Box–Muller sampling, normal CDF, Gaussian posterior, P(in spec)
- settings: SimulationSettings + JSONC loading/validation
- generator: one MeasurementRecord per tick
- window: trailing time window of records
- summary: window statistics
- clock / controller: periodic ticks with start/stop/reset
- cli: `python -m bayesqc`
"""

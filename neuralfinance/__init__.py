"""NeuralFinance: control client for a remote price-estimation trainer.

Load a quote export, push it to the training server, start/stop training
and follow its progress from Python.
"""

__version__ = "0.1.0"

# TrainScope — Training-run visualization core

__version__ = "0.1.0"

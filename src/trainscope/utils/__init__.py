# TrainScope — Utilities

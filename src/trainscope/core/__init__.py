# TrainScope — Core data pipeline

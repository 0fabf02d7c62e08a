# TrainScope — Qt playback and export

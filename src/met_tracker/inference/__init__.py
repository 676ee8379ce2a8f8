"""Activity classifiers behind the ``predict(features) -> PredictionResult`` contract."""

"""
dsegments model I/O module

Models are saved as human-readable JSON:

    {
      "model_type": "DSegmentModel",
      "version": "1.0",
      "n_states": 3,
      "startprob": [...],
      "transmat": [[...], ...],
      "emissionprob": [[...], ...],
      "segment_lengths": [normal, elevated] or null,
      "poisson_means": [normal, elevated] or null
    }

Probabilities are loaded back through the model setters so the log mirrors
are always rebuilt from the linear values.
"""

import json
import os
import warnings

from dsegments.core.probabilities import ConfigurationError, ProbabilityModel


MODEL_TYPE = 'DSegmentModel'
MODEL_VERSION = '1.0'


def load_model(filepath: str) -> ProbabilityModel:
    """
    Load a model from a JSON file.

    Args:
        filepath: Path to model file

    Returns:
        ProbabilityModel instance

    Raises:
        ConfigurationError: if the file is not a D-segment model or is
            missing fields
    """
    with open(filepath, 'r') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"{filepath} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{filepath} does not contain a model object")

    model_type = data.get('model_type', MODEL_TYPE)
    if model_type != MODEL_TYPE:
        raise ConfigurationError(
            f"{filepath} holds a '{model_type}' model, expected '{MODEL_TYPE}'"
        )

    return ProbabilityModel.from_dict(data)


def save_model(model: ProbabilityModel, filepath: str) -> str:
    """
    Save model to file in JSON format.

    If the filepath does not end in .json, the extension is replaced with .json
    and a warning is issued.

    Returns:
        Path actually written
    """
    if not filepath.endswith('.json'):
        old_path = filepath
        base, _ = os.path.splitext(filepath)
        filepath = base + '.json'
        warnings.warn(
            f"Only JSON format is supported for saving. "
            f"Saving to '{filepath}' instead of '{old_path}'."
        )

    data = {'model_type': MODEL_TYPE, 'version': MODEL_VERSION}
    data.update(model.to_dict())
    with open(filepath, 'w') as f:
        json.dump(data, f, indent=2)
    return filepath

from typing import Any, Dict

import numpy as np

from domain.entities.listing import Listing
from domain.entities.recommendation import Recommendation
from domain.entities.user_profile import UserProfile
from .base_scorer import BaseScorer
from .feature_extractor import FeatureVector
from .model_tiers import NEURAL_NETWORK

HIDDEN_FACTOR_NAMES = ('priceWeight', 'locationWeight', 'amenityWeight', 'marketWeight', 'investmentWeight')


class NeuralNetworkScorer(BaseScorer):
    """Fixed feed-forward pipeline over normalised listing and profile inputs.

    Every layer applies ``max(0, x * weight + bias)`` elementwise with the
    tier's constant weight and bias; the output is the unweighted mean of
    the last layer. There is nothing to train.
    """

    recommendation_type = NEURAL_NETWORK

    def input_vector(self, features: FeatureVector, profile: UserProfile) -> np.ndarray:
        traits = profile.traits()
        values = []
        for name, scale in self.tier.network.inputs:
            raw = traits[name] if name in traits else features[name]
            values.append(raw / scale)
        return np.clip(np.array(values, dtype=float), 0.0, 1.0)

    def forward(self, inputs: np.ndarray):
        activations = []
        x = inputs
        for weight, bias in self.tier.network.layers:
            x = np.maximum(0.0, x * weight + bias)
            activations.append(x)
        return float(np.mean(x)), activations

    def score_listing(self, listing: Listing, features: FeatureVector,
                      profile: UserProfile, context: Any = None) -> Recommendation:
        settings = self.tier.network
        output, activations = self.forward(self.input_vector(features, profile))

        profile_weight = 1.0
        if settings.profile_divisor:
            profile_weight = 1 + profile.total_interactions / settings.profile_divisor

        score = max(0.3, min(1.0, output * profile_weight))
        confidence = max(settings.confidence_floor, min(1.0, score + settings.confidence_lift))

        return self._recommendation(
            listing,
            score,
            confidence,
            hidden_factors=self._hidden_factors(activations[0]),
        )

    def _hidden_factors(self, first_layer: np.ndarray) -> Dict[str, float]:
        count = self.tier.network.hidden_factor_count
        return {
            name: float(value)
            for name, value in zip(HIDDEN_FACTOR_NAMES[:count], first_layer[:count])
        }

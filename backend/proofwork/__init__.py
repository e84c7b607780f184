"""ProofOfWork Trust Engine - peer-attested work claims, reputation and anomaly detection"""

__version__ = "1.0.0"

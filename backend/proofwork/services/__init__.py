"""ProofOfWork Trust Engine - Services"""

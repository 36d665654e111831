"""
Pipeline CRM - Client Session Layer

Client authentifié pour l'API REST du CRM (leads, qualifications,
opportunités, propositions, contrats, factures, activations, renouvellements).

Sous-modules:
- core: configuration (YAML + variables d'environnement)
- logging: logs JSON structurés avec masquage des secrets
- network: transport HTTP (httpx)
- auth: stockage des tokens, refresh single-flight, session
- api: enveloppe de réponse et clients métier
"""

__version__ = "0.1.0"

"""TC Outil: dispatch back-office API for a bus network."""

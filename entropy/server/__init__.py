"""API servers and mappers between core objects and wire messages."""
"""TRAPPIST-1 swarm colony simulation."""

"""
tools for variational monte carlo of particles on the sphere
"""

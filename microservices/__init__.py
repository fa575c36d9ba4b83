"""Camp Quest commerce microservices"""

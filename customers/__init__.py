"""customers/ -- Customer records: dataclass and SQLAlchemy repository.

Layer rule: customers/ imports only stdlib, third-party libraries, and core/.
"""

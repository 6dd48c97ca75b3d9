"""
Data layer for footyforecast.

Includes:
- Snapshot types and raw data schema validation (`schema`)
- Loading utilities (`data_loader`)
- Collaborator contracts and repositories (`repository`)
"""

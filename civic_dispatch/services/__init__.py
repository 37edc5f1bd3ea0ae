"""
Services layer - assignment and lifecycle logic lives here, not in routes.

- location_resolver / geo_index / geocoding: coordinates → jurisdiction
- authority_directory / assignment_resolver: jurisdiction → authority
- issue_lifecycle / status_workflow: state machine and audit timeline
- metrics_accumulator / reporting_service: authority counters and admin views
"""

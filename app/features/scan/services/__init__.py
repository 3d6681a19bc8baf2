"""
Scan Services

Organized by responsibility:

1. browser/ - Chrome sessions
   - session_manager.py: acquire/release one navigated tab per scan, WebDriver error translation
   - browser_pool.py: optional pool of pre-launched browsers, health-checked on checkout

2. checkers/ - Independent checks run against one session
   - base.py: Checker wrapper (outcome instead of exception) and the concurrent CheckerSet
   - axe_checker.py: axe-core structural rules -> one issue per violating node
   - gigw_checker.py: the 8 GIGW 3.0 checks
   - lighthouse_checker.py: Lighthouse accessibility score in its own process

3. orchestration/ - Running scans
   - scan_orchestrator.py: one scan end to end; never raises
   - job_controller.py: bounded queue + workers, in-flight tracking, graceful shutdown

4. persistence/ - ScanStore interface and its SQLAlchemy implementation

5. discovery/ - sitemap.xml page discovery for batch scans

6. report/ - Pure aggregation of stored issues into the report object
   - wcag_categorizer.py, issue_grouper.py, fixes.py, report_builder.py

7. scan/ - Request handling behind the scan and batch routes

errors.py holds the tagged error taxonomy shared by all of the above.
"""

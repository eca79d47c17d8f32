"""
Band-structure data access
==========================
Talks to the remote eigenvalue service and keeps a time-boxed cache of its
answers. Runs entirely on the Qt event loop (QNetworkAccessManager).
"""

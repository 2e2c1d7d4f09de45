"""Point-to-Multipoint File Transfer Protocol (P2MP-FTP)

One sender pushes a file to several receivers over UDP:
- packet framing and the 16-bit internet checksum live in ``packet``
- ``sender`` runs one stop-and-wait loop per destination for every segment
- ``receiver`` accepts strictly in-sequence segments and re-acks anything else
"""

__all__ = []

class UsernameTaken(Exception):
    pass


# fields never sent back to clients
PRIVATE_USER_FIELDS = ("password", "securityAnswer")

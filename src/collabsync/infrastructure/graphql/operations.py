"""
GraphQL operation documents used by the remote store client.

Only the operations the sync core and the document/session services call
are defined here. Selection sets share fragments so every decoder in
``mapper`` sees the same field names.
"""

USER_FIELDS = """
fragment UserFields on User {
  id
  userName
  email
  type
}
"""

ANNOTATION_FIELDS = """
fragment AnnotationFields on Annotation {
  id
  annotationId
  documentId
  pageNumber
  xfdf
  author {
    id
  }
}
"""

DOCUMENT_FIELDS = (
    """
fragment DocumentFields on Document {
  id
  name
  isPublic
  createdAt
  updatedAt
  author {
    ...UserFields
  }
  members {
    id
    user {
      ...UserFields
    }
  }
  annotations {
    ...AnnotationFields
  }
}
"""
    + USER_FIELDS
    + ANNOTATION_FIELDS
)


# ============================================================================
# Annotations
# ============================================================================

ADD_ANNOTATION = (
    """
mutation AddAnnotation($input: NewAnnotationInput!) {
  addAnnotation(input: $input) {
    ...AnnotationFields
  }
}
"""
    + ANNOTATION_FIELDS
)

EDIT_ANNOTATION = """
mutation EditAnnotation($id: ID!, $input: EditAnnotationInput!) {
  editAnnotation(id: $id, input: $input) {
    id
  }
}
"""

DELETE_ANNOTATION = """
mutation DeleteAnnotation($id: ID!) {
  deleteAnnotation(id: $id) {
    successful
  }
}
"""


# ============================================================================
# Authentication
# ============================================================================

LOGIN = (
    """
mutation Login($email: String, $password: String, $token: String) {
  login(email: $email, password: $password, token: $token) {
    token
    user {
      ...UserFields
    }
  }
}
"""
    + USER_FIELDS
)

LOGIN_ANONYMOUS = (
    """
mutation LoginAnonymous($userName: String!) {
  loginAnonymous(userName: $userName) {
    token
    user {
      ...UserFields
    }
  }
}
"""
    + USER_FIELDS
)

GET_SESSION = """
query GetSession {
  session {
    token
  }
}
"""


# ============================================================================
# Documents
# ============================================================================

CONNECT_USER_TO_DOCUMENT = """
mutation ConnectUserToDocument($documentId: ID!, $userId: ID!) {
  connectUserToDocument(documentId: $documentId, userId: $userId) {
    successful
  }
}
"""

DELETE_CONNECTED_DOC_USER = """
mutation DeleteConnectedDocUser($documentId: ID!, $userId: ID!) {
  deleteConnectedDocUser(documentId: $documentId, userId: $userId) {
    successful
  }
}
"""

GET_DOCUMENT = (
    """
query GetDocumentById($id: ID!) {
  document(id: $id) {
    ...DocumentFields
  }
}
"""
    + DOCUMENT_FIELDS
)

GET_DOCUMENTS_FILTERED = (
    """
query GetDocumentsFiltered($userId: ID!, $limit: Int) {
  documents(userId: $userId, limit: $limit) {
    ...DocumentFields
  }
}
"""
    + DOCUMENT_FIELDS
)

ADD_DOCUMENT = (
    """
mutation AddDocument($document: NewDocumentInput!, $annotations: [NewAnnotationInput!]) {
  addDocument(document: $document, annotations: $annotations) {
    ...DocumentFields
  }
}
"""
    + DOCUMENT_FIELDS
)

INVITE_USERS_TO_DOCUMENT = """
mutation InviteUsersToDocument($id: ID!, $usersInvited: [InvitedUserInput!]!) {
  inviteUsersToDocument(id: $id, usersInvited: $usersInvited) {
    successful
  }
}
"""

LEAVE_DOCUMENT = """
mutation LeaveDocument($input: DeleteDocumentMemberInput!) {
  leaveDocument(input: $input) {
    successful
  }
}
"""


# ============================================================================
# Subscriptions
# ============================================================================

ON_ANNOTATION_CHANGED = (
    """
subscription OnAnnotationChanged($userId: ID!) {
  annotationChanged(userId: $userId) {
    action
    annotation {
      ...AnnotationFields
    }
  }
}
"""
    + ANNOTATION_FIELDS
)

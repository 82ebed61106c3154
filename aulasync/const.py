"""Constants for aulasync."""

DOMAIN = "aulasync"

# Configuration keys (environment variables)
CONF_PROFESSOR_NAME = "AULASYNC_PROFESSOR_NAME"
CONF_API_URL = "AULASYNC_API_URL"
CONF_API_KEY = "AULASYNC_API_KEY"
CONF_GOOGLE_CLIENT_ID = "AULASYNC_GOOGLE_CLIENT_ID"
CONF_GOOGLE_CLIENT_SECRET = "AULASYNC_GOOGLE_CLIENT_SECRET"
CONF_OAUTH_REDIRECT_HOST = "AULASYNC_OAUTH_REDIRECT_HOST"
CONF_OAUTH_REDIRECT_PORT = "AULASYNC_OAUTH_REDIRECT_PORT"
CONF_FIREBASE_PROJECT_ID = "AULASYNC_FIREBASE_PROJECT_ID"
CONF_FIREBASE_API_KEY = "AULASYNC_FIREBASE_API_KEY"
CONF_FIREBASE_BASE_PATH = "AULASYNC_FIREBASE_BASE_PATH"
CONF_STATE_FILE = "AULASYNC_STATE_FILE"
CONF_LOG_LEVEL = "LOG_LEVEL"

# Default values
DEFAULT_PROFESSOR_NAME = "Nombre del Profesor"
DEFAULT_STATE_FILE = "aulasync_state.json"
DEFAULT_OAUTH_REDIRECT_HOST = "localhost"
DEFAULT_OAUTH_REDIRECT_PORT = 0
DEFAULT_FIREBASE_PROJECT_ID = "planificador-horarios"
DEFAULT_FIREBASE_BASE_PATH = "artifacts/default-scheduler-app-v2/public/data"
GOOGLE_CLIENT_ID_PLACEHOLDER = "TU_CLIENT_ID_DE_GOOGLE.apps.googleusercontent.com"
REQUEST_TIMEOUT = 30

# Sync scopes
SCOPE_TODAY = "today"
SCOPE_ALL = "all"
SYNC_SCOPES = (SCOPE_TODAY, SCOPE_ALL)

# Backend actions
ACTION_GET_ATTENDANCE = "get-asistencias"
ACTION_SYNC_GRADES = "sync-calificaciones"
ACTION_GET_TUTORSHIP = "get-tutoreo"
ACTION_SYNC_TUTORSHIP = "sync-tutoreo"
API_KEY_HEADER = "X-API-KEY"

# Path segments ending in one of these mark the backend script
SCRIPT_EXTENSIONS = (".php", ".asp", ".aspx", ".jsp", ".cgi", ".py")

# Google Classroom
CLASSROOM_BASE_URL = "https://classroom.googleapis.com/v1"
CLASSROOM_SCOPES = [
	"https://www.googleapis.com/auth/classroom.courses.readonly",
	"https://www.googleapis.com/auth/classroom.coursework.me.readonly",
	"https://www.googleapis.com/auth/classroom.coursework.students.readonly",
	"https://www.googleapis.com/auth/classroom.rosters.readonly",
]
GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
LOOPBACK_HOSTS = ("localhost", "127.0.0.1")
DEFAULT_MAX_SCORE = 10

# Firestore
FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"
FIRESTORE_PAGE_SIZE = 300
COLLECTION_TEACHERS = "teachers"
COLLECTION_SCHEDULE = "schedule"
COLLECTION_SUBJECTS = "subjects"
COLLECTION_GROUPS = "groups"
UNKNOWN_SUBJECT = "Materia Desconocida"
UNKNOWN_GROUP = "Grupo Desconocido"

# Local model defaults
DEFAULT_EVALUATION_TYPE = "General"
GROUP_COLORS = (
	"blue", "sky", "cyan", "teal", "emerald", "green", "lime", "yellow",
	"amber", "orange", "red", "rose", "pink", "fuchsia",
)

# Notification levels
LEVEL_INFO = "info"
LEVEL_SUCCESS = "success"
LEVEL_ERROR = "error"

# User-facing messages
MSG_CONFIGURE_BACKEND = "Configura la URL, API Key y tu nombre de profesor."
MSG_CONFIGURE_PROFESSOR = "Escribe tu nombre en Configuración."
MSG_ATTENDANCE_SYNCING = "Sincronizando asistencias..."
MSG_ATTENDANCE_UP_TO_DATE = "Asistencia al día."
MSG_ATTENDANCE_SYNCED = "Sincronizado correctamente: {count} registros."
MSG_ATTENDANCE_FAILED = "Error al sincronizar con la nube."
MSG_GRADES_EMPTY = "No hay calificaciones para sincronizar."
MSG_GRADES_SYNCED = "Calificaciones actualizadas."
MSG_GRADES_FAILED = "Error al subir calificaciones."
MSG_TUTORSHIP_SYNCING = "Sincronizando fichas..."
MSG_TUTORSHIP_SYNCED = "Sincronización exitosa."
MSG_TUTORSHIP_FAILED = "Error al sincronizar tutorías."
MSG_SCHEDULE_EMPTY = "No se encontraron clases en el horario."
MSG_SCHEDULE_UPDATED = "Horario actualizado: {created} grupos creados, {updated} actualizados."
MSG_SCHEDULE_FAILED = "Error al cargar horario."
MSG_CLASSROOM_UNCONFIGURED = "Configura el Client ID de Google para usar Classroom."
MSG_CLASSROOM_CONNECT_FAILED = "Error al conectar con Google."
MSG_CLASSROOM_COURSEWORK_FAILED = "Error al obtener tareas."
MSG_CLASSROOM_SYNCED = "Classroom sincronizado."
MSG_INVALID_OPTION = "Opción no válida, intenta de nuevo."
MSG_CLASSROOM_NO_COURSES = "No se encontraron cursos en Classroom."
MSG_CLASSROOM_ENVIRONMENT = (
	"El inicio de sesión con Google solo funciona con una redirección local "
	"(localhost). Cambia {key} a 'localhost' y vuelve a intentarlo."
)

# Classroom import log lines
LOG_LOGIN_DONE = "Conectado a Google: {count} cursos encontrados."
LOG_LOGIN_FAILED = "❌ Error al conectar con Google: {error}"
LOG_COURSE_DONE = "{count} tareas encontradas."
LOG_COURSEWORK_FAILED = "❌ Error al obtener tareas: {error}"
LOG_SYNC_STARTED = "Iniciando sincronización..."
LOG_FETCHING_PROFILES = "Obteniendo perfiles de alumnos de Classroom..."
LOG_SYNCING_ASSIGNMENT = "Sincronizando tarea: {title}"
LOG_EVALUATION_CREATED = "Evaluación creada: {title} (máximo {max_score})"
LOG_EVALUATION_REUSED = "Usando evaluación existente: {title}"
LOG_STUDENT_UNMATCHED = "Sin coincidencia para el alumno: {name}"
LOG_ASSIGNMENT_DONE = "✓ {count} calificaciones actualizadas para \"{title}\""
LOG_SYNC_DONE = "Sincronización completada con éxito."
LOG_SYNC_FAILED = "❌ Error fatal durante la sincronización: {error}"

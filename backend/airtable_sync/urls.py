from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'airtable_sync'

router = DefaultRouter()
router.register(r'runs', views.PhaseSyncRunViewSet, basename='phase-sync-run')

urlpatterns = [
    path('', include(router.urls)),
    path('sync/', views.sync_airtable_phases, name='sync_phases'),
    path('webhook/', views.airtable_webhook, name='webhook'),
    path('trigger-categories-extraction/', views.trigger_categories_extraction, name='trigger_categories_extraction'),
]

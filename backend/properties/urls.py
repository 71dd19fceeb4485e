from django.urls import path
from . import views

app_name = 'properties'

urlpatterns = [
    path('reset/', views.reset_property, name='reset_property'),
]

from django.urls import path
from . import views

app_name = 'health'

urlpatterns = [
    path('', views.health_check, name='check'),
    path('simple/', views.simple_health_check, name='simple'),
]
